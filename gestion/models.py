"""
Types du domaine : lignes, modificateurs, totaux, paiements, soldes, stock.

Le moteur de calcul ne manipule que ces valeurs ; les dictionnaires JSON
sont convertis en amont par gestion.payloads.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from gestion.money import ZERO, round_money


class InvoiceStatus(str, Enum):
    DRAFT = 'BROUILLON'
    PARTIALLY_PAID = 'PARTIELLEMENT_PAYEE'
    PAID = 'PAYEE'
    CANCELLED = 'ANNULEE'


class MovementDirection(str, Enum):
    IN = 'ENTREE'
    OUT = 'SORTIE'
    INVENTORY = 'INVENTAIRE'


@dataclass(frozen=True)
class LineItem:
    """Ligne d'un document commercial."""

    quantity: Decimal
    unit_price_ht: Decimal = ZERO
    discount_pct: Decimal = ZERO
    vat_rate: Decimal = ZERO
    description: str = ''
    product_id: Optional[str] = None


@dataclass(frozen=True)
class DocumentModifiers:
    """Remise globale, FODEC et timbre fiscal appliqués après les lignes."""

    global_discount_pct: Decimal = ZERO
    fodec_enabled: bool = False
    fodec_rate: Decimal = Decimal('1')
    stamp_enabled: bool = False
    stamp_amount: Decimal = Decimal('1.000')


@dataclass(frozen=True)
class LineTotals:
    effective_unit_price: Decimal
    total_ht: Decimal


@dataclass(frozen=True)
class LineTax:
    """Détail fiscal d'une ligne après remise globale et répartition du FODEC."""

    total_ht: Decimal
    ht_after_discount: Decimal
    fodec_share: Decimal
    vat_base: Decimal
    vat_rate: Decimal
    vat_amount: Decimal


@dataclass(frozen=True)
class VatGroup:
    rate: Decimal
    base: Decimal
    amount: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    total_ht: Decimal = ZERO
    total_fodec: Decimal = ZERO
    total_vat: Decimal = ZERO
    total_stamp: Decimal = ZERO
    total_ttc: Decimal = ZERO
    lines: tuple = ()
    vat_breakdown: tuple = ()

    def to_dict(self) -> dict:
        return {
            'total_ht': str(self.total_ht),
            'total_fodec': str(self.total_fodec),
            'total_vat': str(self.total_vat),
            'total_stamp': str(self.total_stamp),
            'total_ttc': str(self.total_ttc),
            'lines': [
                {
                    'total_ht': str(line.total_ht),
                    'ht_after_discount': str(round_money(line.ht_after_discount)),
                    'fodec_share': str(round_money(line.fodec_share)),
                    'vat_base': str(round_money(line.vat_base)),
                    'vat_rate': str(line.vat_rate),
                    'vat_amount': str(round_money(line.vat_amount)),
                }
                for line in self.lines
            ],
            'vat_breakdown': [
                {'rate': str(g.rate), 'base': str(g.base), 'amount': str(g.amount)}
                for g in self.vat_breakdown
            ],
        }


@dataclass(frozen=True)
class InvoiceRef:
    """Facture cible d'un règlement."""

    id: str
    total: Decimal
    status: InvoiceStatus = InvoiceStatus.DRAFT
    number: str = ''


@dataclass(frozen=True)
class InvoiceRecord:
    """Facture (ou avoir, total négatif) vue par le rapport de solde."""

    id: str
    invoice_date: date
    total: Decimal
    status: InvoiceStatus = InvoiceStatus.DRAFT
    payment_terms: Optional[str] = None
    number: str = ''

    @property
    def is_cancelled(self) -> bool:
        return self.status == InvoiceStatus.CANCELLED


@dataclass(frozen=True)
class PaymentAllocation:
    """Affectation d'un règlement à une facture (invoice_id None : sur compte)."""

    invoice_id: Optional[str]
    invoice_total: Decimal
    amount_paid_before: Decimal
    amount_paid_now: Decimal
    remaining_balance: Decimal

    @property
    def is_on_account(self) -> bool:
        return self.invoice_id is None

    def to_dict(self) -> dict:
        return {
            'invoice_id': self.invoice_id,
            'invoice_total': str(self.invoice_total),
            'amount_paid_before': str(self.amount_paid_before),
            'amount_paid_now': str(self.amount_paid_now),
            'remaining_balance': str(self.remaining_balance),
        }


@dataclass(frozen=True)
class Payment:
    payment_id: str
    counterparty_id: Optional[str] = None
    payment_date: Optional[date] = None
    allocations: tuple = ()
    advance_used: Decimal = ZERO

    @property
    def amount_total(self) -> Decimal:
        return round_money(sum((a.amount_paid_now for a in self.allocations), ZERO))

    @property
    def is_on_account(self) -> bool:
        return all(a.is_on_account for a in self.allocations)

    @property
    def on_account_amount(self) -> Decimal:
        return round_money(sum(
            (a.amount_paid_now for a in self.allocations if a.is_on_account), ZERO
        ))

    def allocations_for(self, invoice_id: str) -> list:
        return [a for a in self.allocations if a.invoice_id == invoice_id]

    def to_dict(self) -> dict:
        return {
            'payment_id': self.payment_id,
            'counterparty_id': self.counterparty_id,
            'payment_date': self.payment_date.isoformat() if self.payment_date else None,
            'amount_total': str(self.amount_total),
            'is_on_account': self.is_on_account,
            'advance_used': str(self.advance_used),
            'allocations': [a.to_dict() for a in self.allocations],
        }


@dataclass(frozen=True)
class OpenInvoice:
    id: str
    number: str
    invoice_date: date
    due_date: date
    total: Decimal
    paid: Decimal
    remaining: Decimal
    bucket: str
    days_overdue: int


@dataclass
class CounterpartyBalance:
    """Solde d'un client ou fournisseur, recalculé à chaque demande."""

    counterparty_id: str
    reference_date: date
    total_invoiced: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_credit_notes: Decimal = ZERO
    current_balance: Decimal = ZERO
    total_outstanding: Decimal = ZERO
    payments_on_account: Decimal = ZERO
    advance_used: Decimal = ZERO
    net_advance_balance: Decimal = ZERO
    aging: dict = field(default_factory=dict)
    open_invoices: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'counterparty_id': self.counterparty_id,
            'reference_date': self.reference_date.isoformat(),
            'total_invoiced': str(self.total_invoiced),
            'total_paid': str(self.total_paid),
            'total_credit_notes': str(self.total_credit_notes),
            'current_balance': str(self.current_balance),
            'total_outstanding': str(self.total_outstanding),
            'payments_on_account': str(self.payments_on_account),
            'advance_used': str(self.advance_used),
            'net_advance_balance': str(self.net_advance_balance),
            'aging': {bucket: str(amount) for bucket, amount in self.aging.items()},
            'open_invoices': [
                {
                    'id': inv.id,
                    'number': inv.number,
                    'invoice_date': inv.invoice_date.isoformat(),
                    'due_date': inv.due_date.isoformat(),
                    'total': str(inv.total),
                    'paid': str(inv.paid),
                    'remaining': str(inv.remaining),
                    'bucket': inv.bucket,
                    'days_overdue': inv.days_overdue,
                }
                for inv in self.open_invoices
            ],
        }


@dataclass(frozen=True)
class MovementKey:
    """Clé naturelle d'un mouvement : un seul mouvement par (document, produit)."""

    source_type: str
    source_id: str
    product_id: str


@dataclass(frozen=True)
class StockMovement:
    key: MovementKey
    direction: MovementDirection
    quantity: Decimal
    movement_date: Optional[date] = None

    @property
    def signed_quantity(self) -> Decimal:
        if self.direction == MovementDirection.OUT:
            return -self.quantity
        return self.quantity

    def to_dict(self) -> dict:
        return {
            'source_type': self.key.source_type,
            'source_id': self.key.source_id,
            'product_id': self.key.product_id,
            'direction': self.direction.value,
            'quantity': str(self.quantity),
            'movement_date': self.movement_date.isoformat() if self.movement_date else None,
        }
