# Importeren registreert de tabellen op Base.metadata
from .counter import NumberCounter
from .invoice import InvoiceRecord
from .project import ProjectRecord
from .quote import QuoteRecord

__all__ = ["NumberCounter", "InvoiceRecord", "ProjectRecord", "QuoteRecord"]
