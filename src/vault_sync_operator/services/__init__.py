"""Clients for the secret store and the Kubernetes API."""
