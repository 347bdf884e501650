"""
Settlement Kernel

Persistence, domain terms and kernel services for two-sided asset contracts:
- Unique, human-readable contract codes
- Typed errors and structured logging
- Contract, party, item and payment-condition storage
"""

__version__ = "0.1.0"
