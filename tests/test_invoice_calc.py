"""
Tests du calcul des totaux de document.

Vérifie que :
- le HT, la TVA et le TTC d'une facture simple sont exacts
- le FODEC est inclus dans la base TVA et le timbre ajouté au TTC
- la remise globale s'applique avant le FODEC et la TVA
- le récapitulatif TVA regroupe les lignes par taux
"""

import random
import sys
from decimal import Decimal
from pathlib import Path

# Ajouter la racine du projet au path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gestion.invoice_calc import calculate_document_totals, calculate_line_totals
from gestion.models import DocumentModifiers, LineItem
from gestion.money import amounts_equal


def line(qty, price, discount='0', vat='19'):
    return LineItem(
        quantity=Decimal(qty),
        unit_price_ht=Decimal(price),
        discount_pct=Decimal(discount),
        vat_rate=Decimal(vat),
    )


def test_line_without_discount():
    totals = calculate_line_totals(line('10', '100.000'))
    assert totals.effective_unit_price == Decimal('100.000')
    assert totals.total_ht == Decimal('1000.000')


def test_line_with_discount():
    totals = calculate_line_totals(line('3', '12.500', discount='10'))
    assert totals.effective_unit_price == Decimal('11.25')
    assert totals.total_ht == Decimal('33.750')


def test_line_total_rounded_half_up():
    # 0.3335 x 1 -> 0.334
    totals = calculate_line_totals(line('1', '0.3335'))
    assert totals.total_ht == Decimal('0.334')


def test_simple_invoice():
    """Une ligne à 19 %, sans FODEC ni timbre."""
    totals = calculate_document_totals([line('10', '100.000')])

    assert totals.total_ht == Decimal('1000.000')
    assert totals.total_fodec == Decimal('0')
    assert totals.total_vat == Decimal('190.000')
    assert totals.total_stamp == Decimal('0')
    assert totals.total_ttc == Decimal('1190.000')
    print("[OK] test_simple_invoice")


def test_invoice_with_fodec_and_stamp():
    """FODEC 1 % inclus dans la base TVA, timbre de 1.000 ajouté au TTC."""
    modifiers = DocumentModifiers(
        fodec_enabled=True,
        fodec_rate=Decimal('1'),
        stamp_enabled=True,
        stamp_amount=Decimal('1.000'),
    )
    totals = calculate_document_totals([line('10', '100.000')], modifiers)

    assert totals.total_fodec == Decimal('10.000')
    assert totals.lines[0].vat_base == Decimal('1010.000')
    assert totals.total_vat == Decimal('191.900')
    assert totals.total_stamp == Decimal('1.000')
    assert totals.total_ttc == Decimal('1202.900')
    print("[OK] test_invoice_with_fodec_and_stamp")


def test_empty_document_has_zero_totals():
    """Un brouillon sans ligne n'a aucun total, timbre compris."""
    modifiers = DocumentModifiers(stamp_enabled=True, stamp_amount=Decimal('1.000'))
    totals = calculate_document_totals([], modifiers)

    assert totals.total_ht == 0
    assert totals.total_vat == 0
    assert totals.total_stamp == 0
    assert totals.total_ttc == 0
    assert totals.vat_breakdown == ()


def test_global_discount_before_taxes():
    modifiers = DocumentModifiers(global_discount_pct=Decimal('10'))
    totals = calculate_document_totals([line('10', '100.000')], modifiers)

    assert totals.total_ht == Decimal('900.000')
    assert totals.total_vat == Decimal('171.000')
    assert totals.total_ttc == Decimal('1071.000')


def test_stamp_is_never_discounted():
    modifiers = DocumentModifiers(
        global_discount_pct=Decimal('50'),
        stamp_enabled=True,
        stamp_amount=Decimal('1.000'),
    )
    totals = calculate_document_totals([line('1', '100.000')], modifiers)

    assert totals.total_stamp == Decimal('1.000')
    assert totals.total_ttc == Decimal('50.000') + Decimal('9.500') + Decimal('1.000')


def test_fodec_prorated_across_mixed_rates():
    """La quote-part de FODEC de chaque ligne suit son poids dans le HT."""
    modifiers = DocumentModifiers(fodec_enabled=True, fodec_rate=Decimal('1'))
    lines = [line('1', '300.000', vat='19'), line('1', '100.000', vat='7')]
    totals = calculate_document_totals(lines, modifiers)

    assert totals.total_ht == Decimal('400.000')
    assert totals.total_fodec == Decimal('4.000')
    assert totals.lines[0].fodec_share == Decimal('3.000')
    assert totals.lines[1].fodec_share == Decimal('1.000')
    # 303 x 19 % + 101 x 7 %
    assert totals.total_vat == Decimal('64.640')
    assert totals.total_ttc == Decimal('468.640')


def test_vat_breakdown_grouped_by_rate():
    lines = [
        line('1', '100.000', vat='19'),
        line('2', '50.000', vat='7'),
        line('1', '10.000', vat='19'),
        line('1', '20.000', vat='0'),
    ]
    totals = calculate_document_totals(lines)

    rates = [group.rate for group in totals.vat_breakdown]
    assert rates == [Decimal('19'), Decimal('7'), Decimal('0')]

    by_rate = {group.rate: group for group in totals.vat_breakdown}
    assert by_rate[Decimal('19')].base == Decimal('110.000')
    assert by_rate[Decimal('19')].amount == Decimal('20.900')
    assert by_rate[Decimal('7')].amount == Decimal('7.000')
    assert by_rate[Decimal('0')].amount == Decimal('0.000')


def test_breakdown_reconciles_with_total_vat():
    """La somme du récapitulatif reste à 0.001 près de la TVA totale."""
    lines = [
        line('3', '1.335', vat='19'),
        line('7', '2.117', discount='5', vat='7'),
        line('1', '0.999', vat='13'),
    ]
    modifiers = DocumentModifiers(
        global_discount_pct=Decimal('3'),
        fodec_enabled=True,
        fodec_rate=Decimal('1'),
    )
    totals = calculate_document_totals(lines, modifiers)

    breakdown_sum = sum(group.amount for group in totals.vat_breakdown)
    assert abs(breakdown_sum - totals.total_vat) <= Decimal('0.001') * len(totals.vat_breakdown)
    assert amounts_equal(totals.total_ttc, totals.total_ht + totals.total_fodec + totals.total_vat)


def test_calculation_is_idempotent():
    lines = [line('4', '19.990', discount='2.5'), line('1', '5.000', vat='7')]
    modifiers = DocumentModifiers(fodec_enabled=True, stamp_enabled=True)

    assert calculate_document_totals(lines, modifiers) == calculate_document_totals(lines, modifiers)


def test_credit_note_negative_quantities():
    """Un avoir (quantités négatives) produit des totaux négatifs."""
    totals = calculate_document_totals([line('-2', '50.000')])

    assert totals.total_ht == Decimal('-100.000')
    assert totals.total_vat == Decimal('-19.000')
    assert totals.total_ttc == Decimal('-119.000')


def test_totals_reconcile_on_random_documents():
    """Documents tirés au hasard (graine fixe) : TTC, récapitulatif et répétition."""
    rng = random.Random(1190)
    rates = ['0', '7', '13', '19']
    for _ in range(300):
        lines = [
            line(
                str(rng.randint(-20, 50)),
                str(Decimal(rng.randint(-50_000, 500_000)) / 1000),
                discount=str(rng.choice([0, 0, 2.5, 10, 33, 100])),
                vat=rng.choice(rates),
            )
            for _ in range(rng.randint(0, 8))
        ]
        modifiers = DocumentModifiers(
            global_discount_pct=Decimal(rng.choice(['0', '0', '3', '12.5'])),
            fodec_enabled=rng.random() < 0.5,
            fodec_rate=Decimal('1'),
            stamp_enabled=rng.random() < 0.5,
        )
        totals = calculate_document_totals(lines, modifiers)

        assert totals.total_ttc == totals.total_ht + totals.total_fodec + totals.total_vat + totals.total_stamp
        for amount in (totals.total_ht, totals.total_fodec, totals.total_vat, totals.total_ttc):
            assert amount == amount.quantize(Decimal('0.001'))

        breakdown_sum = sum((group.amount for group in totals.vat_breakdown), Decimal('0'))
        assert abs(breakdown_sum - totals.total_vat) <= Decimal('0.001') * max(1, len(totals.vat_breakdown))

        assert calculate_document_totals(lines, modifiers) == totals
