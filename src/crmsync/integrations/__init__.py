"""HTTP clients for the services crmsync talks to."""
