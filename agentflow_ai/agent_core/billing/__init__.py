from .ledger import CreditLedger

__all__ = ["CreditLedger"]
