from stockledger.export.csv_export import (
    PERIOD_DAY,
    PERIOD_MONTH,
    CsvExport,
    EmptyExportError,
    export_filename,
    export_products,
    export_transactions,
    save_export,
)

__all__ = [
    "PERIOD_DAY",
    "PERIOD_MONTH",
    "CsvExport",
    "EmptyExportError",
    "export_filename",
    "export_products",
    "export_transactions",
    "save_export",
]
