"""
Ordered schema changes for the CRM database.
Append new steps at the end; never reorder or remove existing ones.
"""
from crm_store.migrations.steps import AddColumn, AddTable

TEMPLATE_COLUMNS = (
    "id INTEGER PRIMARY KEY AUTOINCREMENT",
    "name TEXT NOT NULL",
    "content TEXT NOT NULL",
    "created_at INTEGER NOT NULL",
    "updated_at INTEGER NOT NULL",
)

CRM_MIGRATIONS = [
    AddColumn("units_flats", "client_id", "INTEGER",
              references="clients(id) ON DELETE SET NULL"),
    AddColumn("projects", "company_id", "INTEGER",
              references="companies(id) ON DELETE SET NULL"),
    AddTable("agreement_templates", TEMPLATE_COLUMNS),
    AddTable("payment_request_templates", TEMPLATE_COLUMNS),
    AddTable("payment_receipt_templates", TEMPLATE_COLUMNS),
    AddColumn("unit_payment_receipts", "payment_request_id", "INTEGER",
              references="unit_payment_requests(id) ON DELETE SET NULL"),
    AddColumn("leads", "unit_flat_id", "INTEGER"),
    AddColumn("units_flats", "category", "TEXT"),
    AddColumn("units_flats", "gst_percentage", "REAL", default=0),
    AddColumn("units_flats", "gst_amount", "REAL", default=0),
    AddColumn("units_flats", "b_value", "REAL", default=0),
    AddColumn("units_flats", "w_value", "REAL", default=0),
]
