import csv
import io
from coffee_erp.services.payment_service import CashLedger

HEADERS = [
    "S.No", "Date", "Department", "Type", "Reference", "Amount",
    "Balance After", "Status", "Created By", "Confirmed By", "Notes"
]


def generate_ledger_csv(department=None, start=None, end=None):
    """Cash ledger for the Finance team, oldest first."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(HEADERS)

    for idx, txn in enumerate(CashLedger.transactions(department, start, end), 1):
        writer.writerow([
            idx,
            txn.created_at.strftime('%Y-%m-%d %H:%M') if txn.created_at else "",
            txn.department,
            txn.transaction_type,
            txn.reference or "",
            txn.amount,
            txn.balance_after if txn.balance_after is not None else "",  # pending deposits have none
            txn.status,
            txn.created_by or "",
            txn.confirmed_by or "",
            (txn.notes or "")[:200],
        ])

    output.seek(0)
    return output
