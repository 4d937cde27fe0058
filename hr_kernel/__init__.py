"""
HR Kernel

Core of the HR/ERP backend:
- Closed request-type enumeration and approval domain types
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
- Organization and approval-chain persistence
"""

__version__ = "0.1.0"
