"""
Grade Kernel - approval workflow core for the project-grade backend

A transactional approval engine with:
- Multi-recipient requests resolved by strict majority
- Exactly-once resolution under concurrent decisions
- Post-commit dispatch to pluggable action handlers
- Typed errors and structured logging
"""

__version__ = "0.1.0"
