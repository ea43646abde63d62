"""
API gateway: FastAPI app exposing the concat endpoint.
"""
