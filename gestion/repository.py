"""
Accès PostgreSQL : factures, règlements et mouvements de stock.

Chaque fonction reçoit un curseur ouvert par gestion.db et le tenant_id
explicite ; aucune ne fait de commit, la transaction appartient à l'appelant.
"""

from datetime import date
from typing import Optional

from gestion.errors import StockMovementAnomaly
from gestion.models import (
    InvoiceRecord,
    InvoiceRef,
    InvoiceStatus,
    MovementKey,
    Payment,
    PaymentAllocation,
    StockMovement,
)
from gestion.money import ZERO, round_money

SIDES = ('customer', 'supplier')


def lock_invoice(cursor, tenant_id: str, invoice_id: str) -> Optional[InvoiceRef]:
    """Lit une facture en posant un verrou de ligne (un seul règlement à la fois)."""
    cursor.execute(
        """SELECT id, total_ttc, status, number
           FROM invoices
           WHERE tenant_id = %s AND id = %s
           FOR UPDATE""",
        (tenant_id, invoice_id),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return InvoiceRef(id=str(row[0]), total=round_money(row[1]), status=InvoiceStatus(row[2]), number=row[3])


def fetch_invoice_payments(cursor, tenant_id: str, invoice_id: str) -> list[Payment]:
    """Retourne tous les règlements qui référencent la facture."""
    cursor.execute(
        """SELECT pl.payment_id, pl.invoice_id, pl.invoice_total, pl.amount_paid_before,
                  pl.amount_paid, pl.remaining_balance
           FROM payment_lines pl
           WHERE pl.tenant_id = %s AND pl.invoice_id = %s
           ORDER BY pl.id""",
        (tenant_id, invoice_id),
    )
    return _group_payment_lines(cursor.fetchall())


def _group_payment_lines(rows, headers: dict = None) -> list[Payment]:
    headers = headers or {}
    lines_by_payment = {}
    for payment_id, invoice_id, invoice_total, paid_before, paid, remaining in rows:
        lines_by_payment.setdefault(payment_id, []).append(PaymentAllocation(
            invoice_id=str(invoice_id) if invoice_id is not None else None,
            invoice_total=round_money(invoice_total),
            amount_paid_before=round_money(paid_before),
            amount_paid_now=round_money(paid),
            remaining_balance=round_money(remaining),
        ))

    payments = []
    for payment_id, allocations in lines_by_payment.items():
        counterparty_id, payment_date, advance_used = headers.get(payment_id, (None, None, ZERO))
        payments.append(Payment(
            payment_id=payment_id,
            counterparty_id=counterparty_id,
            payment_date=payment_date,
            allocations=tuple(allocations),
            advance_used=round_money(advance_used),
        ))
    return payments


def insert_payment(cursor, tenant_id: str, side: str, payment: Payment) -> None:
    """Insère le règlement et ses lignes (dans la transaction en cours)."""
    cursor.execute(
        """INSERT INTO payments (id, tenant_id, counterparty_id, side, payment_date, advance_used)
           VALUES (%s, %s, %s, %s, %s, %s)""",
        (payment.payment_id, tenant_id, payment.counterparty_id, side,
         payment.payment_date or date.today(), payment.advance_used),
    )
    for allocation in payment.allocations:
        cursor.execute(
            """INSERT INTO payment_lines
               (tenant_id, payment_id, invoice_id, invoice_total, amount_paid_before,
                amount_paid, remaining_balance)
               VALUES (%s, %s, %s, %s, %s, %s, %s)""",
            (tenant_id, payment.payment_id, allocation.invoice_id, allocation.invoice_total,
             allocation.amount_paid_before, allocation.amount_paid_now, allocation.remaining_balance),
        )


def update_invoice_status(cursor, tenant_id: str, invoice_id: str, status: InvoiceStatus) -> None:
    cursor.execute(
        "UPDATE invoices SET status = %s WHERE tenant_id = %s AND id = %s",
        (status.value, tenant_id, invoice_id),
    )


def fetch_payment_invoice_ids(cursor, tenant_id: str, payment_id: str) -> Optional[list[str]]:
    """
    Verrouille l'en-tête du règlement et retourne les factures qu'il règle.

    Retourne None si le règlement n'existe pas.
    """
    cursor.execute(
        "SELECT id FROM payments WHERE tenant_id = %s AND id = %s FOR UPDATE",
        (tenant_id, payment_id),
    )
    if cursor.fetchone() is None:
        return None

    cursor.execute(
        """SELECT DISTINCT invoice_id FROM payment_lines
           WHERE tenant_id = %s AND payment_id = %s AND invoice_id IS NOT NULL""",
        (tenant_id, payment_id),
    )
    return sorted(str(row[0]) for row in cursor.fetchall())


def delete_payment(cursor, tenant_id: str, payment_id: str) -> None:
    """Supprime le règlement et ses lignes (dans la transaction en cours)."""
    cursor.execute(
        "DELETE FROM payment_lines WHERE tenant_id = %s AND payment_id = %s",
        (tenant_id, payment_id),
    )
    cursor.execute(
        "DELETE FROM payments WHERE tenant_id = %s AND id = %s",
        (tenant_id, payment_id),
    )


def fetch_counterparty_ids(cursor, tenant_id: str, side: str) -> list[str]:
    """Tiers ayant au moins une facture ou un règlement."""
    cursor.execute(
        """SELECT counterparty_id FROM invoices WHERE tenant_id = %s AND side = %s
           UNION
           SELECT counterparty_id FROM payments WHERE tenant_id = %s AND side = %s
           ORDER BY 1""",
        (tenant_id, side, tenant_id, side),
    )
    return [str(row[0]) for row in cursor.fetchall()]


def fetch_counterparty_ledger(cursor, tenant_id: str, side: str, counterparty_id: str):
    """Retourne (factures, avoirs, règlements) d'un client ou fournisseur."""
    cursor.execute(
        """SELECT id, invoice_date, total_ttc, status, payment_terms, number
           FROM invoices
           WHERE tenant_id = %s AND side = %s AND counterparty_id = %s
           ORDER BY invoice_date DESC""",
        (tenant_id, side, counterparty_id),
    )
    invoices = []
    credit_notes = []
    for row in cursor.fetchall():
        record = InvoiceRecord(
            id=str(row[0]),
            invoice_date=row[1],
            total=round_money(row[2]),
            status=InvoiceStatus(row[3]),
            payment_terms=row[4],
            number=row[5],
        )
        if record.total < 0:
            credit_notes.append(record)
        else:
            invoices.append(record)

    cursor.execute(
        """SELECT id, counterparty_id, payment_date, advance_used
           FROM payments
           WHERE tenant_id = %s AND side = %s AND counterparty_id = %s""",
        (tenant_id, side, counterparty_id),
    )
    headers = {row[0]: (row[1], row[2], row[3]) for row in cursor.fetchall()}

    cursor.execute(
        """SELECT pl.payment_id, pl.invoice_id, pl.invoice_total, pl.amount_paid_before,
                  pl.amount_paid, pl.remaining_balance
           FROM payment_lines pl
           JOIN payments p ON p.tenant_id = pl.tenant_id AND p.id = pl.payment_id
           WHERE p.tenant_id = %s AND p.side = %s AND p.counterparty_id = %s
           ORDER BY pl.id""",
        (tenant_id, side, counterparty_id),
    )
    payments = _group_payment_lines(cursor.fetchall(), headers)
    return invoices, credit_notes, payments


def upsert_stock_movement(cursor, tenant_id: str, movement: StockMovement) -> None:
    """Crée ou met à jour le mouvement unique de (document, produit)."""
    key = movement.key
    cursor.execute(
        """INSERT INTO stock_movements
           (tenant_id, source_type, source_id, product_id, direction, quantity, movement_date)
           VALUES (%s, %s, %s, %s, %s, %s, %s)
           ON CONFLICT (tenant_id, source_type, source_id, product_id)
           DO UPDATE SET direction = EXCLUDED.direction,
                         quantity = EXCLUDED.quantity,
                         movement_date = EXCLUDED.movement_date,
                         updated_at = NOW()""",
        (tenant_id, key.source_type, key.source_id, key.product_id,
         movement.direction.value, movement.quantity, movement.movement_date),
    )


def retarget_stock_movement(cursor, tenant_id: str, old_key: MovementKey,
                            new_key: MovementKey) -> Optional[StockMovementAnomaly]:
    """Réaffecte un mouvement au document converti, sans jamais en créer."""
    if old_key == new_key:
        cursor.execute(
            """SELECT 1 FROM stock_movements
               WHERE tenant_id = %s AND source_type = %s AND source_id = %s AND product_id = %s""",
            (tenant_id, old_key.source_type, old_key.source_id, old_key.product_id),
        )
        if cursor.fetchone() is None:
            return _movement_anomaly(tenant_id, old_key, new_key)
        return None

    cursor.execute(
        """DELETE FROM stock_movements
           WHERE tenant_id = %s AND source_type = %s AND source_id = %s AND product_id = %s
             AND EXISTS (
                 SELECT 1 FROM stock_movements
                 WHERE tenant_id = %s AND source_type = %s AND source_id = %s AND product_id = %s
             )""",
        (tenant_id, new_key.source_type, new_key.source_id, new_key.product_id,
         tenant_id, old_key.source_type, old_key.source_id, old_key.product_id),
    )
    cursor.execute(
        """UPDATE stock_movements
           SET source_type = %s, source_id = %s, updated_at = NOW()
           WHERE tenant_id = %s AND source_type = %s AND source_id = %s AND product_id = %s""",
        (new_key.source_type, new_key.source_id,
         tenant_id, old_key.source_type, old_key.source_id, old_key.product_id),
    )
    if cursor.rowcount == 0:
        return _movement_anomaly(tenant_id, old_key, new_key)
    return None


def _movement_anomaly(tenant_id: str, old_key: MovementKey, new_key: MovementKey) -> StockMovementAnomaly:
    anomaly = StockMovementAnomaly(
        source_type=old_key.source_type,
        source_id=old_key.source_id,
        product_id=old_key.product_id,
        target_type=new_key.source_type,
        target_id=new_key.source_id,
    )
    print(f"[WARNING] {anomaly.message}, aucun mouvement créé (tenant {tenant_id})")
    return anomaly


def fetch_current_stock(cursor, tenant_id: str, product_id: str):
    cursor.execute(
        """SELECT COALESCE(SUM(CASE WHEN direction = 'SORTIE' THEN -quantity ELSE quantity END), 0)
           FROM stock_movements
           WHERE tenant_id = %s AND product_id = %s""",
        (tenant_id, product_id),
    )
    return round_money(cursor.fetchone()[0])


def delete_stock_movement(cursor, tenant_id: str, key: MovementKey) -> bool:
    """Supprime le mouvement d'un document annulé ou repassé en brouillon."""
    cursor.execute(
        """DELETE FROM stock_movements
           WHERE tenant_id = %s AND source_type = %s AND source_id = %s AND product_id = %s""",
        (tenant_id, key.source_type, key.source_id, key.product_id),
    )
    return cursor.rowcount > 0
