"""Mini README: Core package initializer for the Money Manager ledger API.

The ledger domain lives in ``money_manager.ledger`` and the HTTP surface in
``money_manager.interface``. This module only re-exports the logger factory
so importing the package stays free of database or web dependencies.
"""

from .logging_utils import get_logger

__all__ = ["get_logger"]
