"""
Planner Kernel

Shared foundation for the school relocation planner projection engine:
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging with request-scoped context
- Year and metric domain constants
- SQLAlchemy persistence for version tabs, metric rows and computed artifacts
"""

__version__ = "0.1.0"
