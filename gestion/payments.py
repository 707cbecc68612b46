"""
Affectation des règlements aux factures et statut de paiement.

Les paiements sur compte (avances) ne sont jamais rapprochés
automatiquement d'une facture : leur consommation est saisie
manuellement via advance_used sur un règlement ultérieur.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from gestion.errors import (
    InsufficientAdvanceError,
    InvalidAmountError,
    InvalidInvoiceError,
    OverpaymentError,
)
from gestion.models import InvoiceRef, InvoiceStatus, Payment, PaymentAllocation
from gestion.money import EPSILON, ZERO, round_money, to_decimal


def _to_amount(value, label: str, field: str = 'amount') -> Decimal:
    """Convertit un montant saisi ; NaN et infini sont refusés."""
    try:
        amount = to_decimal(value)
    except ArithmeticError:
        amount = None
    if amount is None or not amount.is_finite():
        raise InvalidAmountError(f"{label} invalide ({value})", field=field)
    return round_money(amount)


def _sum_paid(allocations: Iterable[PaymentAllocation], invoice_id: str) -> Decimal:
    return round_money(sum(
        (a.amount_paid_now for a in allocations if a.invoice_id == invoice_id), ZERO
    ))


def allocate_payment(invoice: InvoiceRef, prior_allocations: Iterable[PaymentAllocation],
                     requested_amount) -> PaymentAllocation:
    """
    Affecte un montant à une facture en contrôlant le solde restant.

    Raises:
        InvalidInvoiceError: facture annulée ou de total nul/négatif.
        InvalidAmountError: montant demandé nul ou négatif.
        OverpaymentError: montant supérieur au solde restant (+ 0.001).
    """
    label = invoice.number or invoice.id
    invoice_total = round_money(invoice.total)

    if invoice.status == InvoiceStatus.CANCELLED:
        raise InvalidInvoiceError(f"La facture {label} est annulée")
    if invoice_total <= 0:
        raise InvalidInvoiceError(
            f"La facture {label} a un montant nul ou négatif ({invoice_total}) et ne peut pas être réglée"
        )

    amount = _to_amount(requested_amount, f"Montant payé pour la facture {label}")
    if amount <= 0:
        raise InvalidAmountError(f"Le montant payé pour la facture {label} doit être supérieur à zéro")

    amount_paid_before = _sum_paid(prior_allocations, invoice.id)
    remaining_before = round_money(invoice_total - amount_paid_before)

    if amount > remaining_before + EPSILON:
        raise OverpaymentError(
            f"Le montant payé ({amount}) dépasse le solde restant ({remaining_before}) de la facture {label}"
        )

    return PaymentAllocation(
        invoice_id=invoice.id,
        invoice_total=invoice_total,
        amount_paid_before=amount_paid_before,
        amount_paid_now=amount,
        remaining_balance=round_money(max(ZERO, remaining_before - amount)),
    )


def compute_invoice_status(invoice_id: str, invoice_total, payments: Iterable[Payment],
                           current_status: InvoiceStatus = None) -> InvoiceStatus:
    """Recalcule le statut à partir de tous les règlements de la facture."""
    if current_status == InvoiceStatus.CANCELLED:
        return InvoiceStatus.CANCELLED

    total_paid = round_money(sum(
        (_sum_paid(p.allocations, invoice_id) for p in payments), ZERO
    ))
    invoice_total = round_money(invoice_total)

    if total_paid >= invoice_total - EPSILON:
        return InvoiceStatus.PAID
    if total_paid > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.DRAFT


def build_payment(payment_id: str, counterparty_id: Optional[str], payment_date: Optional[date],
                  requests: list[tuple[InvoiceRef, object]], history: Iterable[Payment] = (),
                  advance_used=0, available_advance=None) -> Payment:
    """
    Construit un règlement réparti sur une ou plusieurs factures.

    Chaque ligne est contrôlée indépendamment ; la première ligne invalide
    fait échouer l'ensemble du règlement (aucune ligne n'est conservée).
    Les lignes précédentes du même règlement comptent comme déjà payées.
    """
    if not requests:
        raise InvalidAmountError("Aucune facture valide à régler", field='lines')

    advance_used = _to_amount(advance_used, "Avance utilisée", field='advance_used')
    if advance_used < 0:
        raise InvalidAmountError("L'avance utilisée ne peut pas être négative", field='advance_used')
    if available_advance is not None and advance_used > round_money(available_advance) + EPSILON:
        raise InsufficientAdvanceError(
            f"L'avance utilisée ({advance_used}) dépasse le solde d'avance disponible "
            f"({round_money(available_advance)})"
        )

    prior = [a for p in history for a in p.allocations if not a.is_on_account]
    allocations = []
    for invoice, amount in requests:
        allocation = allocate_payment(invoice, prior + allocations, amount)
        allocations.append(allocation)

    return Payment(
        payment_id=payment_id,
        counterparty_id=counterparty_id,
        payment_date=payment_date,
        allocations=tuple(allocations),
        advance_used=advance_used,
    )


def build_on_account_payment(payment_id: str, counterparty_id: Optional[str],
                             payment_date: Optional[date], amount) -> Payment:
    """Construit un paiement sur compte (avance non affectée)."""
    amount = _to_amount(amount, "Montant du paiement sur compte")
    if amount <= 0:
        raise InvalidAmountError("Le montant du paiement sur compte doit être supérieur à zéro")

    line = PaymentAllocation(
        invoice_id=None,
        invoice_total=ZERO,
        amount_paid_before=ZERO,
        amount_paid_now=amount,
        remaining_balance=ZERO,
    )
    return Payment(
        payment_id=payment_id,
        counterparty_id=counterparty_id,
        payment_date=payment_date,
        allocations=(line,),
    )
