"""Collaborator services used by the datasource: transport, data, catalog, templating, formatting."""
