"""
VendorHub — Pydantic request/response schemas.
"""
