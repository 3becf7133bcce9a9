"""
Schemas module - Request/Response schemas for API endpoints.

Difference from models:
- Models: domain records the stores and services work with
- Schemas: API contract (what client sends/receives)
"""
