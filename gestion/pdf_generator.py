"""
Générateur de PDF avec ReportLab : récapitulatif d'un document commercial
et relevé de solde d'un client ou fournisseur.

Aucun calcul ici : les totaux et soldes sont fournis déjà calculés.
"""

from datetime import date, datetime
from io import BytesIO
from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from gestion.models import CounterpartyBalance, DocumentTotals
from gestion.money import format_amount, round_money

DOCUMENT_LABELS = {
    'FAC': 'FACTURE',
    'AVOIR': 'AVOIR',
    'BL': 'BON DE LIVRAISON',
    'BR': 'BON DE RÉCEPTION',
    'DEVIS': 'DEVIS',
    'FACA': "FACTURE D'ACHAT",
}

_GRID_STYLE = [
    ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
    ('BOX', (0, 0), (-1, -1), 0.5, colors.grey),
    ('INNERGRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ('LEFTPADDING', (0, 0), (-1, -1), 8),
    ('RIGHTPADDING', (0, 0), (-1, -1), 8),
    ('TOPPADDING', (0, 0), (-1, -1), 5),
    ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
]

_HEADER_ROW_STYLE = [
    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#148f77')),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
    ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f9f9f9')]),
]


def _format_date(value) -> str:
    """Convertit une date (ou chaîne ISO) au format JJ/MM/AAAA."""
    if not value:
        return ''
    if isinstance(value, date):
        return value.strftime('%d/%m/%Y')
    try:
        return datetime.strptime(value, '%Y-%m-%d').strftime('%d/%m/%Y')
    except ValueError:
        return value


def _format_rate(value) -> str:
    return f"{round_money(value).normalize():f}".replace('.', ',') + ' %'


def _styles():
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'Title',
        parent=styles['Heading1'],
        fontName='Helvetica-Bold',
        fontSize=18,
        textColor=colors.HexColor('#1a1a1a'),
        spaceAfter=12,
        alignment=TA_CENTER,
    )
    normal_style = ParagraphStyle(
        'Normal',
        parent=styles['Normal'],
        fontName='Helvetica',
        fontSize=9,
        leading=12,
    )
    return title_style, normal_style


def _header(title: str, title_style, logo_path: str = None) -> Table:
    if logo_path and Path(logo_path).exists():
        try:
            first_cell = Image(logo_path, width=3*cm, height=3*cm, kind='proportional')
        except Exception as e:
            print(f"[WARNING] Logo illisible ({logo_path}): {e}")
            first_cell = ''
    else:
        first_cell = ''

    header_table = Table([[first_cell, Paragraph(title, title_style)]], colWidths=[4*cm, 14*cm])
    header_table.setStyle(TableStyle([
        ('ALIGN', (1, 0), (1, 0), 'CENTER'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    return header_table


def _info_table(rows: list[list[str]]) -> Table:
    table = Table(rows, colWidths=[5*cm, 8*cm])
    table.setStyle(TableStyle(_GRID_STYLE + [
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#f0f0f0')),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
    ]))
    return table


def generate_document_pdf(data: dict, totals: DocumentTotals, logo_path: str = None) -> bytes:
    """
    Génère le récapitulatif PDF d'un document commercial.

    Args:
        data: Dictionnaire contenant 'company', 'document' et 'lines'
        totals: Totaux calculés par calculate_document_totals
        logo_path: Chemin vers le logo (optionnel)

    Returns:
        Contenu PDF en bytes
    """
    company = data.get('company', {})
    document = data.get('document', {})
    lines = data.get('lines', [])
    currency = document.get('currency', company.get('currency', 'TND'))

    def money(value):
        return format_amount(value, currency)

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=1.5*cm, bottomMargin=1.5*cm)
    title_style, normal_style = _styles()

    story = []
    title = DOCUMENT_LABELS.get(document.get('type', 'FAC'), 'DOCUMENT')
    story.append(_header(title, title_style, logo_path))
    story.append(Spacer(1, 0.5*cm))

    story.append(Paragraph(
        f"<b>{company.get('name', '')}</b><br/>"
        f"Matricule fiscal : {company.get('matricule_fiscal', 'N/A')}",
        normal_style,
    ))
    story.append(Spacer(1, 0.4*cm))

    story.append(_info_table([
        ['Numéro', document.get('number', '')],
        ['Date', _format_date(document.get('date', ''))],
        ['Tiers', document.get('counterparty_name', '')],
        ['Devise', currency],
    ]))
    story.append(Spacer(1, 0.7*cm))

    # Lignes du document
    line_data = [['Description', 'Qté', 'P.U. HT', 'Remise', 'TVA', 'Total HT']]
    for line, line_tax in zip(lines, totals.lines):
        line_data.append([
            Paragraph(str(line.get('description', '')), normal_style),
            str(line.get('quantity', '')),
            money(line.get('unit_price_ht', 0)),
            _format_rate(line.get('discount_pct', 0) or 0),
            _format_rate(line_tax.vat_rate),
            money(line_tax.total_ht),
        ])

    line_table = Table(line_data, colWidths=[6*cm, 1.5*cm, 3*cm, 1.8*cm, 1.7*cm, 3*cm])
    line_table.setStyle(TableStyle(_GRID_STYLE + _HEADER_ROW_STYLE))
    story.append(line_table)
    story.append(Spacer(1, 0.7*cm))

    # Récapitulatif TVA par taux
    if totals.vat_breakdown:
        vat_recap_data = [['Taux TVA', 'Base', 'Montant TVA']]
        for group in totals.vat_breakdown:
            vat_recap_data.append([_format_rate(group.rate), money(group.base), money(group.amount)])
        vat_recap_table = Table(vat_recap_data, colWidths=[7*cm, 5*cm, 5*cm])
        vat_recap_table.setStyle(TableStyle(_GRID_STYLE + [
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#edf2f7')),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ]))
        story.append(vat_recap_table)
        story.append(Spacer(1, 0.3*cm))

    # Totaux
    total_data = [['Total HT', money(totals.total_ht)]]
    if totals.total_fodec:
        total_data.append(['FODEC', money(totals.total_fodec)])
    total_data.append(['Total TVA', money(totals.total_vat)])
    if totals.total_stamp:
        total_data.append(['Timbre fiscal', money(totals.total_stamp)])
    total_data.append(['Total TTC', money(totals.total_ttc)])

    total_table = Table(total_data, colWidths=[10*cm, 7*cm])
    total_table.setStyle(TableStyle(_GRID_STYLE + [
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, -1), (-1, -1), 12),
        ('BACKGROUND', (1, -1), (1, -1), colors.HexColor('#f0f0f0')),
    ]))
    story.append(total_table)

    if document.get('payment_terms'):
        story.append(Spacer(1, 0.7*cm))
        story.append(Paragraph(f"<b>Conditions de paiement:</b> {document['payment_terms']}", normal_style))

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes


def generate_balance_pdf(data: dict, balance: CounterpartyBalance, logo_path: str = None) -> bytes:
    """
    Génère le relevé de solde d'un tiers : totaux, balance âgée et
    factures ouvertes.

    Args:
        data: Dictionnaire contenant 'company' et 'counterparty_name'
        balance: Solde calculé par compute_counterparty_balance
    """
    company = data.get('company', {})
    currency = company.get('currency', 'TND')

    def money(value):
        return format_amount(value, currency)

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=1.5*cm, bottomMargin=1.5*cm)
    title_style, normal_style = _styles()

    story = [_header('RELEVÉ DE SOLDE', title_style, logo_path), Spacer(1, 0.5*cm)]

    story.append(_info_table([
        ['Société', company.get('name', '')],
        ['Tiers', data.get('counterparty_name') or balance.counterparty_id],
        ['Date de référence', _format_date(balance.reference_date)],
    ]))
    story.append(Spacer(1, 0.7*cm))

    summary = Table([
        ['Total facturé', money(balance.total_invoiced)],
        ['Total avoirs', money(balance.total_credit_notes)],
        ['Total réglé', money(balance.total_paid)],
        ['Solde', money(balance.current_balance)],
        ['Solde dû (factures ouvertes)', money(balance.total_outstanding)],
        ['Avance disponible', money(balance.net_advance_balance)],
    ], colWidths=[10*cm, 7*cm])
    summary.setStyle(TableStyle(_GRID_STYLE + [
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('FONTNAME', (0, 3), (-1, 3), 'Helvetica-Bold'),
    ]))
    story.append(summary)
    story.append(Spacer(1, 0.7*cm))

    # Balance âgée
    aging_rows = [['Tranche (jours)', 'Montant']]
    for bucket, amount in balance.aging.items():
        aging_rows.append([bucket, money(amount)])
    aging_table = Table(aging_rows, colWidths=[10*cm, 7*cm])
    aging_table.setStyle(TableStyle(_GRID_STYLE + _HEADER_ROW_STYLE))
    story.append(aging_table)

    if balance.open_invoices:
        story.append(Spacer(1, 0.7*cm))
        rows = [['Facture', 'Date', 'Échéance', 'Montant', 'Réglé', 'Reste']]
        for inv in balance.open_invoices:
            rows.append([
                inv.number or inv.id,
                _format_date(inv.invoice_date),
                _format_date(inv.due_date),
                money(inv.total),
                money(inv.paid),
                money(inv.remaining),
            ])
        open_table = Table(rows, colWidths=[3*cm, 2.3*cm, 2.3*cm, 3.3*cm, 3*cm, 3*cm])
        open_table.setStyle(TableStyle(_GRID_STYLE + _HEADER_ROW_STYLE + [('FONTSIZE', (0, 0), (-1, -1), 8)]))
        story.append(open_table)

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes
