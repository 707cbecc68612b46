"""
Arithmétique monétaire : arrondi à 3 décimales (millime) et comparaisons.

Tous les montants calculés passent par round_money avant d'être comparés
ou enregistrés.
"""

from decimal import Decimal, ROUND_HALF_UP

THREE_PLACES = Decimal('0.001')
EPSILON = Decimal('0.001')
ZERO = Decimal('0')


def to_decimal(value) -> Decimal:
    """Convertit une valeur (str, int, float, None) en Decimal."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def round_money(value) -> Decimal:
    """Arrondit un montant à 3 décimales (arrondi commercial)."""
    return to_decimal(value).quantize(THREE_PLACES, rounding=ROUND_HALF_UP)


def amounts_equal(a, b) -> bool:
    """Compare deux montants avec une tolérance de 0.001 (incluse)."""
    return abs(round_money(a) - round_money(b)) <= EPSILON


def format_amount(value, currency: str = 'TND') -> str:
    """Formate un montant avec 3 décimales et le symbole de la devise."""
    d = round_money(value)
    text = f"{d:,.3f}".replace(',', ' ').replace('.', ',')
    suffix = ' DT' if currency == 'TND' else f' {currency}'
    return text + suffix
