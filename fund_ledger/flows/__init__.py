"""Business flow layer.

This package contains the exposed ledger operations with dependency injection.

Note: Importing any module from this package automatically triggers dependency
      registration via the import below.
"""

import fund_ledger.core.container  # noqa: F401 - Trigger dependency registration
