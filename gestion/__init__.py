"""Moteur de calcul de la gestion commerciale : totaux, règlements, soldes et stock."""

from gestion.invoice_calc import calculate_line_totals, calculate_document_totals
from gestion.payments import allocate_payment, compute_invoice_status, build_payment, build_on_account_payment
from gestion.balance import compute_due_date, aging_bucket, compute_counterparty_balance, compute_balances
from gestion.stock import StockLedger
from gestion.money import round_money, amounts_equal, format_amount
