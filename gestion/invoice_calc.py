"""
Fonctions de calcul partagées pour les totaux de document.

Utilisées par les réceptions, factures d'achat, conversions BL/devis en
facture et par le générateur PDF : un seul calcul pour tous les documents.
"""

from gestion.models import DocumentModifiers, DocumentTotals, LineItem, LineTax, LineTotals, VatGroup
from gestion.money import ZERO, round_money

HUNDRED = 100


def calculate_line_totals(item: LineItem) -> LineTotals:
    """Calcule le total HT d'une ligne avec remise (hors TVA)."""
    unit_price = item.unit_price_ht
    # Pas de multiplication quand la remise est nulle
    if item.discount_pct > 0:
        unit_price = unit_price * (1 - item.discount_pct / HUNDRED)

    return LineTotals(
        effective_unit_price=unit_price,
        total_ht=round_money(unit_price * item.quantity),
    )


def calculate_document_totals(lines: list[LineItem], modifiers: DocumentModifiers = None) -> DocumentTotals:
    """
    Calcule les totaux d'un document : HT, FODEC, TVA, timbre et TTC.

    L'ordre des étapes est fixe :
        1. total HT de chaque ligne ;
        2. remise globale sur la somme des lignes ;
        3. FODEC sur le HT remisé ;
        4. TVA ligne par ligne, sur le HT remisé de la ligne augmenté de
           sa quote-part de FODEC ;
        5. timbre fiscal (montant fixe, jamais remisé) ;
        6. TTC = HT + FODEC + TVA + timbre.

    Un document sans ligne (brouillon) a tous ses totaux à zéro.
    """
    if modifiers is None:
        modifiers = DocumentModifiers()

    if not lines:
        return DocumentTotals()

    line_totals = [calculate_line_totals(line) for line in lines]
    sum_lines = sum((lt.total_ht for lt in line_totals), ZERO)

    discount_factor = 1 - modifiers.global_discount_pct / HUNDRED
    total_ht = round_money(sum_lines * discount_factor)

    if modifiers.fodec_enabled:
        total_fodec = round_money(total_ht * modifiers.fodec_rate / HUNDRED)
    else:
        total_fodec = ZERO

    line_taxes = []
    vat_sum = ZERO
    groups = {}

    for line, lt in zip(lines, line_totals):
        ht_after_discount = lt.total_ht * discount_factor
        if total_ht != 0:
            fodec_share = total_fodec * ht_after_discount / total_ht
        else:
            fodec_share = ZERO
        vat_base = ht_after_discount + fodec_share
        vat_amount = vat_base * line.vat_rate / HUNDRED
        vat_sum += vat_amount

        line_taxes.append(LineTax(
            total_ht=lt.total_ht,
            ht_after_discount=ht_after_discount,
            fodec_share=fodec_share,
            vat_base=vat_base,
            vat_rate=line.vat_rate,
            vat_amount=vat_amount,
        ))

        # Regroupement par taux pour le récapitulatif TVA
        group = groups.setdefault(line.vat_rate, {'base': ZERO, 'amount': ZERO})
        group['base'] += vat_base
        group['amount'] += vat_amount

    total_vat = round_money(vat_sum)
    total_stamp = round_money(modifiers.stamp_amount) if modifiers.stamp_enabled else ZERO
    total_ttc = round_money(total_ht + total_fodec + total_vat + total_stamp)

    vat_breakdown = tuple(
        VatGroup(rate=rate, base=round_money(info['base']), amount=round_money(info['amount']))
        for rate, info in sorted(groups.items(), key=lambda item: item[0], reverse=True)
    )

    return DocumentTotals(
        total_ht=total_ht,
        total_fodec=total_fodec,
        total_vat=total_vat,
        total_stamp=total_stamp,
        total_ttc=total_ttc,
        lines=tuple(line_taxes),
        vat_breakdown=vat_breakdown,
    )
