"""
SIWES Portal
Student Industrial Work Experience Scheme - logbook, review and attendance backend.

Architecture:
- FastAPI routes guarded by role checks and the student-resource access policy
- Logbook entry state machine (Draft -> Submitted -> Reviewed) in services/
- Persistence behind the Store port: PostgreSQL (SQLAlchemy) or in-memory
"""

__version__ = "1.0.0"
