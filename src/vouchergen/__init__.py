"""
Unique random voucher code generation backed by a SQLite ledger
"""

__version__ = "1.0.0"

from vouchergen.generator import CodeGenerator
from vouchergen.storage import BatchReconciler, CodeStorage, StorageError

__all__ = ["CodeGenerator", "BatchReconciler", "CodeStorage", "StorageError"]
