"""
ETL Kernel

Core of the configuration-driven ETL engine:
- Runtime record types synthesized from declarative field schemas
- Type coercion from loosely-typed input to declared field types
- Generic field access by name or dotted path
- Typed exceptions and structured JSON logging
"""

__version__ = "0.1.0"
