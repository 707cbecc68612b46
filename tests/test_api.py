"""
Tests des routes de l'API (PostgreSQL désactivé dans la configuration de démo).

Vérifie que :
- les totaux et contrôles de règlement sont calculés sans base
- les erreurs de validation et les erreurs métier renvoient 400
- les routes qui exigent PostgreSQL renvoient 404
- les mouvements de stock utilisent le registre en mémoire
"""

import sys
from pathlib import Path

# Ajouter la racine du projet au path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import STOCK_LEDGER, app


def get_client():
    """Retourne un test client Flask."""
    app.config['TESTING'] = True
    return app.test_client()


SIMPLE_LINE = {'quantity': 10, 'unit_price_ht': '100.000', 'discount_pct': 0, 'vat_rate': 19}


def test_health():
    resp = get_client().get('/api/health')

    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'ok'


def test_document_totals_with_config_defaults():
    """Le timbre est activé par défaut dans la configuration de démo."""
    resp = get_client().post('/api/documents/totals', json={'lines': [SIMPLE_LINE]})

    assert resp.status_code == 200, f"Attendu 200, recu {resp.status_code}"
    totals = resp.get_json()['totals']
    assert totals['total_ht'] == '1000.000'
    assert totals['total_vat'] == '190.000'
    assert totals['total_stamp'] == '1.000'
    assert totals['total_ttc'] == '1191.000'
    print("[OK] test_document_totals_with_config_defaults")


def test_document_totals_with_fodec():
    modifiers = {'fodec_enabled': True, 'fodec_rate': '1', 'stamp_enabled': True, 'stamp_amount': '1.000'}
    resp = get_client().post('/api/documents/totals', json={'lines': [SIMPLE_LINE], 'modifiers': modifiers})

    totals = resp.get_json()['totals']
    assert totals['total_fodec'] == '10.000'
    assert totals['total_vat'] == '191.900'
    assert totals['total_ttc'] == '1202.900'
    assert totals['vat_breakdown'] == [{'rate': '19', 'base': '1010.000', 'amount': '191.900'}]


def test_document_totals_validation_error():
    resp = get_client().post('/api/documents/totals', json={
        'document_type': 'BR',
        'lines': [{**SIMPLE_LINE, 'quantity': -2}],
    })

    assert resp.status_code == 400
    json_data = resp.get_json()
    assert json_data['success'] is False
    assert json_data['errors'][0]['field'] == 'lines[0][quantity]'


def test_document_totals_pdf():
    resp = get_client().post('/api/documents/totals/pdf', json={
        'document': {'type': 'FAC', 'number': 'FAC-2026/001', 'date': '2026-03-01'},
        'lines': [{**SIMPLE_LINE, 'description': 'Prestation'}],
    })

    assert resp.status_code == 200
    assert resp.mimetype == 'application/pdf'
    assert resp.data.startswith(b'%PDF')
    assert 'FAC-2026_001.pdf' in resp.headers['Content-Disposition']


def test_allocate_partial_payment():
    resp = get_client().post('/api/payments/allocate', json={
        'invoice': {'id': 'FAC-1', 'total': '1190.000'},
        'prior_allocations': [{'amount': '700.000'}],
        'amount': '490.000',
    })

    assert resp.status_code == 200
    json_data = resp.get_json()
    assert json_data['allocation']['amount_paid_before'] == '700.000'
    assert json_data['allocation']['remaining_balance'] == '0.000'
    assert json_data['status'] == 'PAYEE'


def test_allocate_overpayment_rejected():
    resp = get_client().post('/api/payments/allocate', json={
        'invoice': {'id': 'FAC-1', 'total': '100.000'},
        'amount': '100.002',
    })

    assert resp.status_code == 400
    assert resp.get_json()['errors'][0]['field'] == 'amount'


def test_allocate_cancelled_invoice_rejected():
    resp = get_client().post('/api/payments/allocate', json={
        'invoice': {'id': 'FAC-1', 'total': '100.000', 'status': 'ANNULEE'},
        'amount': '10',
    })

    assert resp.status_code == 400
    assert resp.get_json()['errors'][0]['field'] == 'invoice_id'


def test_balance_compute():
    resp = get_client().post('/api/balances/compute', json={
        'counterparty_id': 'CLI-1',
        'reference_date': '2026-06-30',
        'invoices': [{'id': 'FAC-1', 'invoice_date': '2026-05-16', 'total': '200.000',
                      'payment_terms': 'comptant'}],
        'payments': [
            {'id': 'P1', 'lines': [{'amount': '500.000'}]},
            {'id': 'P2', 'lines': [], 'advance_used': '200.000'},
        ],
    })

    assert resp.status_code == 200
    balance = resp.get_json()['balance']
    assert balance['aging']['31-60'] == '200.000'
    assert balance['net_advance_balance'] == '300.000'
    assert balance['open_invoices'][0]['days_overdue'] == 45


def test_balance_compute_validation_error():
    resp = get_client().post('/api/balances/compute', json={
        'reference_date': '30/06/2026',
        'invoices': [{'total': '10'}],
    })

    assert resp.status_code == 400
    fields = [e['field'] for e in resp.get_json()['errors']]
    assert 'reference_date' in fields
    assert 'invoices[0][id]' in fields


def test_balance_pdf():
    resp = get_client().post('/api/balances/pdf', json={
        'counterparty_id': 'CLI-1',
        'counterparty_name': 'Client Test SARL',
        'reference_date': '2026-06-30',
        'invoices': [{'id': 'FAC-1', 'invoice_date': '2026-01-10', 'total': '350.250'}],
    })

    assert resp.status_code == 200
    assert resp.data.startswith(b'%PDF')


def test_database_routes_disabled():
    client = get_client()

    resp = client.post('/api/payments', json={'tenant_id': 'T1'})
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'Base de données non activée'

    resp = client.get('/api/customers/CLI-1/balance?tenant_id=T1')
    assert resp.status_code == 404

    resp = client.get('/api/articles/CLI-1/balance')
    assert resp.status_code == 404


def test_stock_movement_and_conversion():
    client = get_client()
    movement = {
        'source_type': 'BL', 'source_id': 'API-BL-1', 'product_id': 'API-PRD-1',
        'direction': 'SORTIE', 'quantity': '4', 'movement_date': '2026-03-01',
    }

    # Double validation du BL
    assert client.post('/api/stock/movements', json=movement).status_code == 200
    assert client.post('/api/stock/movements', json=movement).status_code == 200
    assert client.get('/api/stock/API-PRD-1').get_json()['stock'] == '-4'

    resp = client.post('/api/stock/retarget', json={
        'source_type': 'BL', 'source_id': 'API-BL-1',
        'target_type': 'FAC', 'target_id': 'API-FAC-1',
        'product_ids': ['API-PRD-1', 'API-PRD-2'],
    })

    assert resp.status_code == 200
    json_data = resp.get_json()
    assert json_data['retargeted'] == 1
    assert json_data['warnings'][0]['product_id'] == 'API-PRD-2'
    assert len(STOCK_LEDGER.movements_for('API-PRD-1')) == 1
    assert client.get('/api/stock/API-PRD-1').get_json()['stock'] == '-4'


def test_stock_movement_validation_error():
    resp = get_client().post('/api/stock/movements', json={
        'source_type': 'BR', 'source_id': 'BR-1', 'product_id': 'PRD-1',
        'direction': 'ENTREE', 'quantity': '-3',
    })

    assert resp.status_code == 400
    assert resp.get_json()['errors'][0]['field'] == 'quantity'


def test_retarget_requires_products():
    resp = get_client().post('/api/stock/retarget', json={
        'source_type': 'BL', 'source_id': 'BL-1', 'target_type': 'FAC', 'target_id': 'FAC-1',
    })

    assert resp.status_code == 400
    assert resp.get_json()['errors'][0]['field'] == 'product_ids'


def test_delete_stock_movement():
    client = get_client()
    movement = {'source_type': 'BL', 'source_id': 'API-BL-9', 'product_id': 'API-PRD-9',
                'direction': 'SORTIE', 'quantity': '2'}
    client.post('/api/stock/movements', json=movement)

    resp = client.delete('/api/stock/movements', json=movement)
    assert resp.get_json()['deleted'] is True
    assert client.get('/api/stock/API-PRD-9').get_json()['stock'] == '0'

    resp = client.delete('/api/stock/movements', json=movement)
    assert resp.get_json()['deleted'] is False


def test_document_pdf_saved_to_storage(tmp_path, monkeypatch):
    from app import CONFIG
    monkeypatch.setitem(CONFIG, 'pdf_storage', str(tmp_path))

    resp = get_client().post('/api/documents/totals/pdf', json={
        'document': {'type': 'DEVIS', 'number': 'DEV-42'},
        'lines': [SIMPLE_LINE],
        'save': True,
    })

    assert resp.status_code == 200
    assert (tmp_path / 'DEV-42.pdf').read_bytes().startswith(b'%PDF')
