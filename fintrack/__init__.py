"""
FinTrack - Personal Finance Client

Client-side core of a personal finance tracker: shopping lists whose
purchases become categorized expenses in the ledger.

DESIGN PRINCIPLES:
1. The UI updates first; the backend confirms or the change is rolled back
2. A list is only completed once its expenses exist
3. Fail visibly: every failure reaches the user as a notification
4. Every change sent to the backend is audited
5. The backend is swappable (HTTP or in-memory)
"""

__version__ = "1.0.0"
__author__ = "FinTrack Team"
