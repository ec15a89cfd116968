"""Handler modules for sync targets."""

# Import handlers to register them - all handlers register themselves via @kopf decorators
from . import targets  # noqa: F401
