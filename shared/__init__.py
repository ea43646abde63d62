"""
Shared infrastructure: settings, error taxonomy, structured logging and models.
"""
