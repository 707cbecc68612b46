"""
Validation et conversion des données JSON reçues par l'API.

Les fonctions validate_* retournent une liste d'erreurs
[{'field': ..., 'message': ...}] ; les fonctions *_from_payload supposent
des données validées et construisent les types du domaine.
"""

from datetime import date, datetime
from decimal import InvalidOperation

from gestion.models import (
    DocumentModifiers,
    InvoiceRecord,
    InvoiceRef,
    InvoiceStatus,
    LineItem,
    MovementDirection,
    MovementKey,
    Payment,
    PaymentAllocation,
)
from gestion.money import round_money, to_decimal

# Types de documents dont les quantités doivent être positives
POSITIVE_QUANTITY_DOCUMENTS = ('BR', 'BL')


def _parse_decimal(value):
    """Retourne le Decimal ou None si la valeur n'est pas numérique."""
    if isinstance(value, bool):
        return None
    try:
        parsed = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return None
    return parsed if parsed.is_finite() else None


def _parse_bool(value, default: bool) -> bool:
    if value is None or value == '':
        return default
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'oui', 'on')
    return bool(value)


def parse_date(value, default: date = None):
    """Convertit une date ISO (AAAA-MM-JJ) ; retourne default si absente."""
    if not value:
        return default
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()


def _validate_date(value, field: str, label: str) -> list[dict]:
    if not value:
        return []
    try:
        parse_date(value)
    except ValueError:
        return [{'field': field, 'message': f'{label} invalide (format attendu AAAA-MM-JJ)'}]
    return []


def validate_lines(lines, document_type: str = None) -> list[dict]:
    """Valide les lignes d'un document."""
    errors = []

    if not isinstance(lines, list):
        return [{'field': 'lines', 'message': 'Les lignes doivent être une liste'}]

    for i, line in enumerate(lines):
        if not isinstance(line, dict):
            errors.append({'field': f'lines[{i}]', 'message': f'Ligne {i+1} : format invalide'})
            continue

        qty = _parse_decimal(line.get('quantity', 0))
        if qty is None:
            errors.append({
                'field': f'lines[{i}][quantity]',
                'message': f'Ligne {i+1} : quantité invalide'
            })
        elif qty < 0 and document_type in POSITIVE_QUANTITY_DOCUMENTS:
            errors.append({
                'field': f'lines[{i}][quantity]',
                'message': f'Ligne {i+1} : la quantité ne peut pas être négative'
            })

        if _parse_decimal(line.get('unit_price_ht', 0)) is None:
            errors.append({
                'field': f'lines[{i}][unit_price_ht]',
                'message': f'Ligne {i+1} : prix unitaire invalide'
            })

        discount = _parse_decimal(line.get('discount_pct', 0))
        if discount is None or discount < 0 or discount > 100:
            errors.append({
                'field': f'lines[{i}][discount_pct]',
                'message': f'Ligne {i+1} : la remise doit être comprise entre 0 et 100'
            })

        vat_rate = _parse_decimal(line.get('vat_rate', 0))
        if vat_rate is None or vat_rate < 0:
            errors.append({
                'field': f'lines[{i}][vat_rate]',
                'message': f'Ligne {i+1} : taux de TVA invalide'
            })

    return errors


def validate_modifiers(data) -> list[dict]:
    """Valide les modificateurs de document (remise globale, FODEC, timbre)."""
    errors = []
    if data is None:
        return errors
    if not isinstance(data, dict):
        return [{'field': 'modifiers', 'message': 'Les modificateurs doivent être un objet'}]

    discount = _parse_decimal(data.get('global_discount_pct', 0))
    if discount is None or discount < 0 or discount > 100:
        errors.append({
            'field': 'modifiers[global_discount_pct]',
            'message': 'La remise globale doit être comprise entre 0 et 100'
        })

    if data.get('fodec_rate') is not None:
        rate = _parse_decimal(data['fodec_rate'])
        if rate is None or rate < 0:
            errors.append({'field': 'modifiers[fodec_rate]', 'message': 'Taux FODEC invalide'})

    if data.get('stamp_amount') is not None:
        amount = _parse_decimal(data['stamp_amount'])
        if amount is None or amount < 0:
            errors.append({'field': 'modifiers[stamp_amount]', 'message': 'Montant du timbre invalide'})

    return errors


def line_items_from_payload(lines: list[dict]) -> list[LineItem]:
    return [
        LineItem(
            quantity=to_decimal(line.get('quantity', 0)),
            unit_price_ht=to_decimal(line.get('unit_price_ht', 0)),
            discount_pct=to_decimal(line.get('discount_pct', 0)),
            vat_rate=to_decimal(line.get('vat_rate', 0)),
            description=line.get('description', '') or '',
            product_id=line.get('product_id'),
        )
        for line in lines
    ]


def modifiers_from_payload(data, defaults: dict) -> DocumentModifiers:
    """Construit les modificateurs ; les valeurs absentes viennent de la configuration."""
    data = data or {}
    return DocumentModifiers(
        global_discount_pct=to_decimal(data.get('global_discount_pct', 0)),
        fodec_enabled=_parse_bool(data.get('fodec_enabled'), defaults.get('fodec_enabled', False)),
        fodec_rate=to_decimal(data.get('fodec_rate', defaults.get('fodec_rate', '1'))),
        stamp_enabled=_parse_bool(data.get('stamp_enabled'), defaults.get('stamp_enabled', False)),
        stamp_amount=to_decimal(data.get('stamp_amount', defaults.get('stamp_amount', '1.000'))),
    )


def _parse_status(value) -> InvoiceStatus:
    try:
        return InvoiceStatus(value or InvoiceStatus.DRAFT.value)
    except ValueError:
        return InvoiceStatus.DRAFT


def validate_invoice(data, field: str = 'invoice') -> list[dict]:
    if not isinstance(data, dict):
        return [{'field': field, 'message': 'Facture manquante ou invalide'}]
    errors = []
    if not str(data.get('id') or '').strip():
        errors.append({'field': f'{field}[id]', 'message': "L'identifiant de la facture est obligatoire"})
    if data.get('total') in (None, '') or _parse_decimal(data.get('total')) is None:
        errors.append({'field': f'{field}[total]', 'message': 'Montant de la facture invalide'})
    errors.extend(_validate_date(data.get('invoice_date'), f'{field}[invoice_date]', 'Date de facture'))
    return errors


def invoice_ref_from_payload(data: dict) -> InvoiceRef:
    return InvoiceRef(
        id=str(data['id']),
        total=to_decimal(data.get('total')),
        status=_parse_status(data.get('status')),
        number=data.get('number', '') or '',
    )


def invoice_record_from_payload(data: dict, reference_date: date) -> InvoiceRecord:
    return InvoiceRecord(
        id=str(data['id']),
        invoice_date=parse_date(data.get('invoice_date'), default=reference_date),
        total=to_decimal(data.get('total')),
        status=_parse_status(data.get('status')),
        payment_terms=data.get('payment_terms'),
        number=data.get('number', '') or '',
    )


def validate_amount(value, field: str, required: bool = False) -> list[dict]:
    """Valide un montant isolé (NaN et infini refusés)."""
    if value in (None, ''):
        if required:
            return [{'field': field, 'message': 'Le montant est obligatoire'}]
        return []
    if _parse_decimal(value) is None:
        return [{'field': field, 'message': 'Montant invalide'}]
    return []


def validate_payment_lines(lines, field: str = 'lines') -> list[dict]:
    """Valide les lignes d'un règlement (facture + montant)."""
    if not isinstance(lines, list):
        return [{'field': field, 'message': 'Les lignes de règlement doivent être une liste'}]
    errors = []
    for i, line in enumerate(lines):
        if not isinstance(line, dict):
            errors.append({'field': f'{field}[{i}]', 'message': f'Ligne {i+1} : format invalide'})
            continue
        if line.get('amount') in (None, '') or _parse_decimal(line.get('amount')) is None:
            errors.append({'field': f'{field}[{i}][amount]', 'message': f'Ligne {i+1} : montant invalide'})
    return errors


def allocations_from_payload(lines: list[dict]) -> list[PaymentAllocation]:
    """Convertit des affectations déjà enregistrées (historique)."""
    allocations = []
    for line in lines:
        invoice_id = line.get('invoice_id')
        allocations.append(PaymentAllocation(
            invoice_id=str(invoice_id) if invoice_id not in (None, '') else None,
            invoice_total=round_money(line.get('invoice_total', 0)),
            amount_paid_before=round_money(line.get('amount_paid_before', 0)),
            amount_paid_now=round_money(line.get('amount')),
            remaining_balance=round_money(line.get('remaining_balance', 0)),
        ))
    return allocations


def validate_payments(payments, field: str = 'payments') -> list[dict]:
    if not isinstance(payments, list):
        return [{'field': field, 'message': 'Les règlements doivent être une liste'}]
    errors = []
    for i, payment in enumerate(payments):
        if not isinstance(payment, dict):
            errors.append({'field': f'{field}[{i}]', 'message': f'Règlement {i+1} : format invalide'})
            continue
        errors.extend(validate_payment_lines(payment.get('lines', []), f'{field}[{i}][lines]'))
        if _parse_decimal(payment.get('advance_used', 0)) is None:
            errors.append({'field': f'{field}[{i}][advance_used]', 'message': f'Règlement {i+1} : avance utilisée invalide'})
        errors.extend(_validate_date(payment.get('payment_date'), f'{field}[{i}][payment_date]', 'Date de règlement'))
    return errors


def payments_from_payload(payments: list[dict]) -> list[Payment]:
    return [
        Payment(
            payment_id=str(payment.get('id', i)),
            counterparty_id=payment.get('counterparty_id'),
            payment_date=parse_date(payment.get('payment_date')),
            allocations=tuple(allocations_from_payload(payment.get('lines', []))),
            advance_used=round_money(payment.get('advance_used', 0)),
        )
        for i, payment in enumerate(payments)
    ]


def validate_movement(data) -> list[dict]:
    """Valide un mouvement de stock (clé naturelle, sens, quantité)."""
    if not isinstance(data, dict):
        return [{'field': '_form', 'message': 'Mouvement de stock invalide'}]
    errors = []
    for key in ('source_type', 'source_id', 'product_id'):
        if not str(data.get(key, '') or '').strip():
            errors.append({'field': key, 'message': f'Le champ {key} est obligatoire'})

    if data.get('direction') not in [d.value for d in MovementDirection]:
        errors.append({'field': 'direction', 'message': 'Sens invalide (ENTREE, SORTIE ou INVENTAIRE)'})

    qty = _parse_decimal(data.get('quantity'))
    if qty is None:
        errors.append({'field': 'quantity', 'message': 'Quantité invalide'})
    elif qty < 0:
        errors.append({'field': 'quantity', 'message': 'La quantité ne peut pas être négative'})

    errors.extend(_validate_date(data.get('movement_date'), 'movement_date', 'Date du mouvement'))
    return errors


def movement_key_from_payload(data: dict) -> MovementKey:
    return MovementKey(
        source_type=str(data['source_type']),
        source_id=str(data['source_id']),
        product_id=str(data['product_id']),
    )
