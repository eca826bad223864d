"""
Spend Ledger - Source Package

The budget and expense accounting engine behind a conversational
personal-finance tracker. Chat tools and UI actions call into this
package with an already-authenticated tenant id.

DESIGN PRINCIPLES:
1. Every read and write is scoped to exactly one tenant
2. Money is Decimal end to end, never float
3. Validate before touching storage
4. Fail visibly at the facade, never with a raw exception
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Spend Ledger Team"
