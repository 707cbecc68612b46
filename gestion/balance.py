"""
Solde et balance âgée d'un client ou d'un fournisseur.

Le solde est entièrement recalculé à partir des factures, avoirs et
règlements fournis ; la même fonction sert aux clients et aux fournisseurs.
"""

import calendar
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from gestion.models import CounterpartyBalance, InvoiceRecord, OpenInvoice, Payment
from gestion.money import ZERO, round_money

DEFAULT_TERM_DAYS = 30
AGING_BUCKETS = ('0-30', '31-60', '61-90', '>90')

_DAYS_RE = re.compile(r'(\d+)\s*jours?')
_END_OF_MONTH_RE = re.compile(r'fin\s+de\s+mois\s*\+?\s*(\d+)')


def compute_due_date(invoice_date: date, payment_terms: Optional[str] = None) -> date:
    """
    Calcule la date d'échéance à partir des conditions de paiement.

    Formats reconnus, dans cet ordre : "N jours" (prioritaire, y compris
    dans "30 jours fin de mois"), "fin de mois + N", "comptant" ou
    "à réception". Par défaut : 30 jours.
    """
    if not payment_terms:
        return invoice_date + timedelta(days=DEFAULT_TERM_DAYS)

    terms = payment_terms.lower().strip()

    match = _DAYS_RE.search(terms)
    if match:
        return invoice_date + timedelta(days=int(match.group(1)))

    match = _END_OF_MONTH_RE.search(terms)
    if match:
        last_day = calendar.monthrange(invoice_date.year, invoice_date.month)[1]
        end_of_month = invoice_date.replace(day=last_day)
        return end_of_month + timedelta(days=int(match.group(1)))

    if 'comptant' in terms or 'réception' in terms or 'reception' in terms:
        return invoice_date

    return invoice_date + timedelta(days=DEFAULT_TERM_DAYS)


def aging_bucket(days_overdue: int) -> str:
    """Tranche d'ancienneté ; une facture non échue tombe dans 0-30."""
    if days_overdue <= 30:
        return '0-30'
    if days_overdue <= 60:
        return '31-60'
    if days_overdue <= 90:
        return '61-90'
    return '>90'


def compute_counterparty_balance(counterparty_id: str, reference_date: date,
                                 invoices: Iterable[InvoiceRecord],
                                 credit_notes: Iterable[InvoiceRecord],
                                 payments: Iterable[Payment]) -> CounterpartyBalance:
    """
    Calcule le solde d'un tiers à une date de référence.

    - les documents annulés sont exclus de tous les cumuls ;
    - une facture de total négatif est un avoir (cumulé en valeur absolue) ;
    - total_paid ne compte que les lignes affectées à une facture active
      présente dans invoices ;
    - les paiements sur compte n'alimentent que net_advance_balance.
    """
    invoices = list(invoices)
    credit_notes = list(credit_notes)
    payments = list(payments)

    active_invoices = [inv for inv in invoices if not inv.is_cancelled]
    active_ids = {inv.id for inv in active_invoices if inv.total >= 0}

    paid_by_invoice = {}
    payments_on_account = ZERO
    advance_used = ZERO
    for payment in payments:
        for allocation in payment.allocations:
            if allocation.is_on_account:
                payments_on_account += allocation.amount_paid_now
            elif allocation.invoice_id in active_ids:
                paid_by_invoice[allocation.invoice_id] = (
                    paid_by_invoice.get(allocation.invoice_id, ZERO) + allocation.amount_paid_now
                )
        advance_used += payment.advance_used

    total_invoiced = ZERO
    total_credit_notes = ZERO
    total_outstanding = ZERO
    aging = {bucket: ZERO for bucket in AGING_BUCKETS}
    open_invoices = []

    for note in credit_notes:
        if not note.is_cancelled:
            total_credit_notes += abs(note.total)

    for invoice in active_invoices:
        if invoice.total < 0:
            total_credit_notes += abs(invoice.total)
            continue

        total_invoiced += invoice.total
        paid = round_money(paid_by_invoice.get(invoice.id, ZERO))
        remaining = round_money(max(ZERO, invoice.total - paid))
        if remaining <= 0:
            continue

        due_date = compute_due_date(invoice.invoice_date, invoice.payment_terms)
        days_overdue = (reference_date - due_date).days
        bucket = aging_bucket(days_overdue)

        aging[bucket] += remaining
        total_outstanding += remaining
        open_invoices.append(OpenInvoice(
            id=invoice.id,
            number=invoice.number,
            invoice_date=invoice.invoice_date,
            due_date=due_date,
            total=round_money(invoice.total),
            paid=paid,
            remaining=remaining,
            bucket=bucket,
            days_overdue=days_overdue,
        ))

    total_invoiced = round_money(total_invoiced)
    total_credit_notes = round_money(total_credit_notes)
    total_paid = round_money(sum(paid_by_invoice.values(), ZERO))

    return CounterpartyBalance(
        counterparty_id=counterparty_id,
        reference_date=reference_date,
        total_invoiced=total_invoiced,
        total_paid=total_paid,
        total_credit_notes=total_credit_notes,
        current_balance=round_money(total_invoiced - total_credit_notes - total_paid),
        total_outstanding=round_money(total_outstanding),
        payments_on_account=round_money(payments_on_account),
        advance_used=round_money(advance_used),
        net_advance_balance=round_money(payments_on_account - advance_used),
        aging={bucket: round_money(amount) for bucket, amount in aging.items()},
        open_invoices=open_invoices,
    )


def compute_balances(reference_date: date, ledgers: dict) -> tuple[list[CounterpartyBalance], Decimal]:
    """
    Soldes de tous les tiers d'un côté (clients ou fournisseurs).

    ledgers associe à chaque tiers le triplet (factures, avoirs, règlements).
    Les soldes sont triés par solde décroissant ; le total ne cumule que les
    soldes positifs (ce qui reste dû).
    """
    balances = [
        compute_counterparty_balance(counterparty_id, reference_date, *ledger)
        for counterparty_id, ledger in ledgers.items()
    ]
    balances.sort(key=lambda b: b.current_balance, reverse=True)
    total_owed = round_money(sum((b.current_balance for b in balances if b.current_balance > 0), ZERO))
    return balances, total_owed
