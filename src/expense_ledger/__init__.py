"""Personal expense ledger with CSV/XLSX import and export."""

__version__ = "0.1.0"
