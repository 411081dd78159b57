"""Feature modules for the name wallet.

- names: name_new / name_firstupdate / name_update and the pending store
- monitoring: block polling that broadcasts matured reveals
"""

from namewallet.features import names
from namewallet.features import monitoring

__all__ = ["names", "monitoring"]
