"""
Application Flask de gestion commerciale : calcul des totaux de documents,
règlements, soldes clients/fournisseurs et mouvements de stock.
"""

import os
import re
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request

from gestion.balance import compute_balances, compute_counterparty_balance
from gestion.db import db_cursor, db_transaction, get_db_connection
from gestion.errors import GestionError, InvalidInvoiceError
from gestion.invoice_calc import calculate_document_totals
from gestion.models import MovementDirection, MovementKey, Payment, StockMovement
from gestion.money import to_decimal
from gestion.payloads import (
    allocations_from_payload,
    invoice_record_from_payload,
    invoice_ref_from_payload,
    line_items_from_payload,
    modifiers_from_payload,
    movement_key_from_payload,
    parse_date,
    payments_from_payload,
    validate_amount,
    validate_invoice,
    validate_lines,
    validate_modifiers,
    validate_movement,
    validate_payment_lines,
    validate_payments,
)
from gestion.payments import allocate_payment, build_on_account_payment, build_payment, compute_invoice_status
from gestion.pdf_generator import generate_balance_pdf, generate_document_pdf
from gestion import repository
from gestion.stock import StockLedger

_PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = _PROJECT_ROOT / 'resources' / 'config' / 'gestion.conf'

SIDES = {'customers': 'customer', 'suppliers': 'supplier'}


def load_config(config_path=DEFAULT_CONFIG_PATH) -> dict:
    """Charge la configuration depuis un fichier texte."""
    config = {}
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Fichier de configuration introuvable: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' in line:
                key, value = line.split('=', 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                # Conversion des booléens
                if value.lower() == 'true':
                    value = True
                elif value.lower() == 'false':
                    value = False
                config[key] = value

    return config


def validate_company_config(config: dict) -> list[str]:
    """Valide les paramètres société et les valeurs par défaut des documents."""
    errors = []

    if not str(config.get('name', '')).strip():
        errors.append("Nom de la société non renseigné dans la configuration")

    currency = str(config.get('currency', 'TND'))
    if not re.match(r'^[A-Z]{3}$', currency):
        errors.append(f"Devise invalide: '{currency}' (code ISO à 3 lettres attendu)")

    for key in ('fodec_rate', 'stamp_amount'):
        value = config.get(key)
        if value in (None, ''):
            continue
        try:
            if to_decimal(value) < 0:
                errors.append(f"{key} ne peut pas être négatif: '{value}'")
        except ArithmeticError:
            errors.append(f"{key} invalide: '{value}' (valeur numérique attendue)")

    return errors


def get_logo_path(config: dict):
    """Retourne le chemin du logo, ou None s'il est absent."""
    logo = str(config.get('logo', '') or '').strip()
    if not logo:
        return None

    if not Path(logo).exists():
        print(f"[WARNING] Logo introuvable: {logo}, PDF générés sans logo")
        return None

    return logo


def load_env() -> None:
    """Charge .env.local (prioritaire) ou .env depuis la racine du projet."""
    env_local = _PROJECT_ROOT / '.env.local'
    env_file = _PROJECT_ROOT / '.env'

    if env_local.exists():
        load_dotenv(env_local, override=True)
    elif env_file.exists():
        load_dotenv(env_file, override=True)


def check_database_connection() -> bool:
    """Vérifie la connexion à la base de données PostgreSQL (ouvre puis ferme)."""
    try:
        import psycopg2
    except ImportError:
        print("[ERROR] Le module psycopg2 n'est pas installé. Exécutez: pip install psycopg2-binary")
        return False

    try:
        conn = get_db_connection()
        print(f"[OK] Connexion à PostgreSQL établie ({os.environ.get('DB_URL', 'localhost')}/"
              f"{os.environ.get('DB_NAME', 'gestion_commerciale')})")
        conn.close()
        return True
    except psycopg2.Error as e:
        print(f"[ERROR] Impossible de se connecter à PostgreSQL: {e}")
        return False


def validate_startup_config() -> None:
    """Valide la configuration au démarrage de l'application."""
    print("=" * 60)
    print("Validation de la configuration...")
    print("=" * 60)

    errors = validate_company_config(CONFIG)

    if is_db_enabled():
        load_env()
        if not check_database_connection():
            errors.append("Impossible d'établir la connexion à PostgreSQL")

    pdf_storage = Path(CONFIG.get('pdf_storage', './data/pdf'))
    if not pdf_storage.exists():
        pdf_storage.mkdir(parents=True, exist_ok=True)
        print(f"[OK] Répertoire créé: {pdf_storage}")

    if errors:
        print("\n[ERREURS DE CONFIGURATION]")
        for error in errors:
            print(f"  - {error}")
        print("\nL'application ne peut pas démarrer. Corrigez les erreurs ci-dessus.")
        sys.exit(1)

    print("\n[OK] Configuration validée avec succès")
    print(f"  - Société: {CONFIG.get('name')}")
    print(f"  - Devise: {CONFIG.get('currency', 'TND')}")
    print(f"  - FODEC par défaut: {'Activé' if CONFIG.get('fodec_enabled') else 'Désactivé'} "
          f"({CONFIG.get('fodec_rate', '1')} %)")
    print(f"  - Timbre par défaut: {'Activé' if CONFIG.get('stamp_enabled') else 'Désactivé'} "
          f"({CONFIG.get('stamp_amount', '1.000')})")
    print(f"  - PostgreSQL: {'Activé' if is_db_enabled() else 'Désactivé'}")
    print("=" * 60 + "\n")


# Charger la configuration
CONFIG = load_config(os.environ.get('GESTION_CONF', DEFAULT_CONFIG_PATH))
LOGO_PATH = get_logo_path(CONFIG)

COMPANY = {
    'name': CONFIG.get('name', ''),
    'matricule_fiscal': CONFIG.get('matricule_fiscal', ''),
    'currency': CONFIG.get('currency', 'TND'),
}

app = Flask(__name__)
app.secret_key = os.environ.get('FLASK_SECRET_KEY', 'gestion-secret-key-change-in-production')

# Registre de stock utilisé quand PostgreSQL est désactivé
STOCK_LEDGER = StockLedger()


def is_db_enabled() -> bool:
    return CONFIG.get('is_db_pg') is True


def _errors_response(errors: list[dict], status: int = 400):
    return jsonify({'success': False, 'errors': errors}), status


def _server_error(context: str, error: Exception):
    print(f"[ERROR] {context}: {error}")
    message = f'Erreur serveur: {error}' if app.debug else 'Erreur serveur'
    return _errors_response([{'field': '_form', 'message': message}], 500)


def _db_disabled_response():
    return jsonify({'error': 'Base de données non activée'}), 404


def _require_tenant(data: dict):
    tenant_id = str(data.get('tenant_id') or '').strip()
    if not tenant_id:
        return None, [{'field': 'tenant_id', 'message': 'Le tenant_id est obligatoire'}]
    return tenant_id, []


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.route('/api/health')
def health():
    """Indique l'état de l'application et le mode de persistance."""
    return jsonify({
        'status': 'ok',
        'database': 'postgresql' if is_db_enabled() else 'désactivée',
        'company': COMPANY['name'],
    })


def _parse_document(data: dict):
    """Valide et convertit les lignes et modificateurs d'un document."""
    lines = data.get('lines') or []
    modifiers = data.get('modifiers')
    document_type = data.get('document_type') or (data.get('document') or {}).get('type')

    errors = validate_lines(lines, document_type) + validate_modifiers(modifiers)
    if errors:
        return None, None, errors

    return line_items_from_payload(lines), modifiers_from_payload(modifiers, CONFIG), []


@app.route('/api/documents/totals', methods=['POST'])
def document_totals():
    """Calcule les totaux HT, FODEC, TVA, timbre et TTC d'un document."""
    data = _json_body()
    items, modifiers, errors = _parse_document(data)
    if errors:
        return _errors_response(errors)

    try:
        totals = calculate_document_totals(items, modifiers)
    except Exception as e:
        return _server_error('Calcul des totaux', e)

    return jsonify({'success': True, 'totals': totals.to_dict()})


@app.route('/api/documents/totals/pdf', methods=['POST'])
def document_totals_pdf():
    """Génère le récapitulatif PDF d'un document."""
    data = _json_body()
    items, modifiers, errors = _parse_document(data)
    if errors:
        return _errors_response(errors)

    try:
        totals = calculate_document_totals(items, modifiers)
        pdf_bytes = generate_document_pdf(
            {'company': COMPANY, 'document': data.get('document') or {}, 'lines': data.get('lines') or []},
            totals,
            logo_path=LOGO_PATH,
        )
    except Exception as e:
        return _server_error('Génération du PDF document', e)

    number = re.sub(r'[^\w\-]', '_', str((data.get('document') or {}).get('number', 'document')))

    # Copie optionnelle dans le répertoire de stockage
    if data.get('save') is True:
        storage_dir = Path(CONFIG.get('pdf_storage', './data/pdf'))
        storage_dir.mkdir(parents=True, exist_ok=True)
        pdf_path = storage_dir / f"{number}.pdf"
        pdf_path.write_bytes(pdf_bytes)
        print(f"[OK] PDF enregistré: {pdf_path}")

    return Response(
        pdf_bytes,
        mimetype='application/pdf',
        headers={'Content-Disposition': f'inline; filename="{number}.pdf"'},
    )


@app.route('/api/payments/allocate', methods=['POST'])
def allocate():
    """Contrôle une affectation de règlement sans l'enregistrer."""
    data = _json_body()
    prior_lines = data.get('prior_allocations') or []

    errors = validate_invoice(data.get('invoice')) + validate_payment_lines(prior_lines, 'prior_allocations')
    errors.extend(validate_amount(data.get('amount'), 'amount', required=True))
    if errors:
        return _errors_response(errors)

    invoice = invoice_ref_from_payload(data['invoice'])
    prior = allocations_from_payload(
        [{**line, 'invoice_id': line.get('invoice_id', invoice.id)} for line in prior_lines]
    )

    try:
        allocation = allocate_payment(invoice, prior, data['amount'])
    except GestionError as e:
        return _errors_response([e.to_dict()])

    status = compute_invoice_status(
        invoice.id,
        invoice.total,
        [Payment('prior', allocations=tuple(prior)), Payment('new', allocations=(allocation,))],
        invoice.status,
    )
    return jsonify({'success': True, 'allocation': allocation.to_dict(), 'status': status.value})


def _record_payment(cursor, tenant_id: str, side: str, data: dict) -> dict:
    """Enregistre un règlement sous verrou des factures concernées."""
    payment_id = str(data['payment_id'])
    counterparty_id = str(data['counterparty_id'])
    payment_date = parse_date(data.get('payment_date'), default=date.today())

    if data.get('on_account_amount') not in (None, ''):
        payment = build_on_account_payment(payment_id, counterparty_id, payment_date,
                                           data['on_account_amount'])
        repository.insert_payment(cursor, tenant_id, side, payment)
        print(f"[OK] Paiement sur compte {payment_id} enregistré ({payment.amount_total})")
        return {'payment': payment.to_dict(), 'statuses': {}}

    # Les lignes à montant nul sont ignorées
    lines = [line for line in data.get('lines') or [] if to_decimal(line.get('amount')) != 0]

    invoices = {}
    history = []
    # Verrous posés dans un ordre stable pour éviter les interblocages
    for invoice_id in sorted({str(line.get('invoice_id') or '') for line in lines}):
        invoice = repository.lock_invoice(cursor, tenant_id, invoice_id) if invoice_id else None
        if invoice is None:
            raise InvalidInvoiceError(f"Facture {invoice_id or '?'} introuvable")
        invoices[invoice_id] = invoice
        history.extend(repository.fetch_invoice_payments(cursor, tenant_id, invoice_id))

    advance_used = to_decimal(data.get('advance_used', 0))
    available_advance = None
    if advance_used > 0:
        ledger = repository.fetch_counterparty_ledger(cursor, tenant_id, side, counterparty_id)
        available_advance = compute_counterparty_balance(
            counterparty_id, payment_date, *ledger
        ).net_advance_balance

    payment = build_payment(
        payment_id,
        counterparty_id,
        payment_date,
        [(invoices[str(line['invoice_id'])], line['amount']) for line in lines],
        history=history,
        advance_used=advance_used,
        available_advance=available_advance,
    )
    repository.insert_payment(cursor, tenant_id, side, payment)

    statuses = {}
    for invoice_id, invoice in invoices.items():
        status = compute_invoice_status(invoice_id, invoice.total, history + [payment], invoice.status)
        repository.update_invoice_status(cursor, tenant_id, invoice_id, status)
        statuses[invoice_id] = status.value

    print(f"[OK] Règlement {payment_id} enregistré ({payment.amount_total}, {len(invoices)} facture(s))")
    return {'payment': payment.to_dict(), 'statuses': statuses}


@app.route('/api/payments', methods=['POST'])
def create_payment():
    """Enregistre un règlement (factures ou paiement sur compte)."""
    if not is_db_enabled():
        return _db_disabled_response()

    data = _json_body()
    tenant_id, errors = _require_tenant(data)
    side = data.get('side', 'customer')
    if side not in SIDES.values():
        errors.append({'field': 'side', 'message': 'side doit valoir customer ou supplier'})
    for key in ('payment_id', 'counterparty_id'):
        if not str(data.get(key) or '').strip():
            errors.append({'field': key, 'message': f'Le champ {key} est obligatoire'})
    for key in ('advance_used', 'on_account_amount'):
        errors.extend(validate_amount(data.get(key), key))
    if data.get('on_account_amount') in (None, ''):
        errors.extend(validate_payment_lines(data.get('lines') or []))
    if errors:
        return _errors_response(errors)

    try:
        with db_transaction() as (_conn, cursor):
            result = _record_payment(cursor, tenant_id, side, data)
    except GestionError as e:
        return _errors_response([e.to_dict()])
    except Exception as e:
        return _server_error('Enregistrement du règlement', e)

    return jsonify({'success': True, **result}), 201


def _delete_payment(cursor, tenant_id: str, payment_id: str):
    """Supprime un règlement et recalcule le statut des factures qu'il réglait."""
    invoice_ids = repository.fetch_payment_invoice_ids(cursor, tenant_id, payment_id)
    if invoice_ids is None:
        return None

    invoices = {}
    for invoice_id in invoice_ids:
        invoice = repository.lock_invoice(cursor, tenant_id, invoice_id)
        if invoice is not None:
            invoices[invoice_id] = invoice

    repository.delete_payment(cursor, tenant_id, payment_id)

    # Tous les règlements restants, quel que soit l'ordre des suppressions
    statuses = {}
    for invoice_id, invoice in invoices.items():
        remaining = repository.fetch_invoice_payments(cursor, tenant_id, invoice_id)
        status = compute_invoice_status(invoice_id, invoice.total, remaining, invoice.status)
        repository.update_invoice_status(cursor, tenant_id, invoice_id, status)
        statuses[invoice_id] = status.value

    print(f"[OK] Règlement {payment_id} supprimé ({len(invoices)} facture(s) recalculée(s))")
    return statuses


@app.route('/api/payments/<payment_id>', methods=['DELETE'])
def delete_payment(payment_id):
    """Supprime un règlement ; le statut des factures concernées est recalculé."""
    if not is_db_enabled():
        return _db_disabled_response()

    tenant_id, errors = _require_tenant(request.args)
    if errors:
        return _errors_response(errors)

    try:
        with db_transaction() as (_conn, cursor):
            statuses = _delete_payment(cursor, tenant_id, payment_id)
    except Exception as e:
        return _server_error('Suppression du règlement', e)

    if statuses is None:
        return jsonify({'error': 'Règlement introuvable'}), 404
    return jsonify({'success': True, 'statuses': statuses})


def _parse_balance_request(data: dict):
    errors = []
    try:
        reference_date = parse_date(data.get('reference_date'), default=date.today())
    except ValueError:
        reference_date = None
        errors.append({'field': 'reference_date', 'message': 'Date de référence invalide (format attendu AAAA-MM-JJ)'})

    invoices = data.get('invoices') or []
    credit_notes = data.get('credit_notes') or []
    payments = data.get('payments') or []

    if not isinstance(invoices, list) or not isinstance(credit_notes, list):
        errors.append({'field': 'invoices', 'message': 'Les factures et avoirs doivent être des listes'})
        return None, errors

    for i, invoice in enumerate(invoices):
        errors.extend(validate_invoice(invoice, f'invoices[{i}]'))
    for i, note in enumerate(credit_notes):
        errors.extend(validate_invoice(note, f'credit_notes[{i}]'))
    errors.extend(validate_payments(payments))
    if errors:
        return None, errors

    return compute_counterparty_balance(
        str(data.get('counterparty_id') or ''),
        reference_date,
        [invoice_record_from_payload(inv, reference_date) for inv in invoices],
        [invoice_record_from_payload(note, reference_date) for note in credit_notes],
        payments_from_payload(payments),
    ), []


@app.route('/api/balances/compute', methods=['POST'])
def balance_compute():
    """Calcule le solde et la balance âgée à partir des documents fournis."""
    balance, errors = _parse_balance_request(_json_body())
    if errors:
        return _errors_response(errors)
    return jsonify({'success': True, 'balance': balance.to_dict()})


@app.route('/api/balances/pdf', methods=['POST'])
def balance_pdf():
    """Génère le relevé de solde PDF à partir des documents fournis."""
    data = _json_body()
    balance, errors = _parse_balance_request(data)
    if errors:
        return _errors_response(errors)

    try:
        pdf_bytes = generate_balance_pdf(
            {'company': COMPANY, 'counterparty_name': data.get('counterparty_name', '')},
            balance,
            logo_path=LOGO_PATH,
        )
    except Exception as e:
        return _server_error('Génération du relevé PDF', e)

    return Response(pdf_bytes, mimetype='application/pdf')


@app.route('/api/<side>/balances')
def counterparty_balances(side):
    """Soldes de tous les clients (ou fournisseurs) depuis la base."""
    if side not in SIDES:
        return jsonify({'error': 'Ressource inconnue'}), 404
    if not is_db_enabled():
        return _db_disabled_response()

    tenant_id, errors = _require_tenant(request.args)
    try:
        reference_date = parse_date(request.args.get('date'), default=date.today())
    except ValueError:
        errors.append({'field': 'date', 'message': 'Date de référence invalide (format attendu AAAA-MM-JJ)'})
    if errors:
        return _errors_response(errors)

    try:
        with db_cursor() as (_conn, cursor):
            ledgers = {
                counterparty_id: repository.fetch_counterparty_ledger(cursor, tenant_id, SIDES[side], counterparty_id)
                for counterparty_id in repository.fetch_counterparty_ids(cursor, tenant_id, SIDES[side])
            }
        balances, total_owed = compute_balances(reference_date, ledgers)
    except Exception as e:
        return _server_error('Calcul des soldes', e)

    return jsonify({
        'success': True,
        'reference_date': reference_date.isoformat(),
        'total': str(total_owed),
        'balances': [b.to_dict() for b in balances],
    })


@app.route('/api/<side>/<counterparty_id>/balance')
def counterparty_balance(side, counterparty_id):
    """Solde d'un client ou fournisseur depuis la base."""
    if side not in SIDES:
        return jsonify({'error': 'Ressource inconnue'}), 404
    if not is_db_enabled():
        return _db_disabled_response()

    tenant_id, errors = _require_tenant(request.args)
    try:
        reference_date = parse_date(request.args.get('date'), default=date.today())
    except ValueError:
        errors.append({'field': 'date', 'message': 'Date de référence invalide (format attendu AAAA-MM-JJ)'})
    if errors:
        return _errors_response(errors)

    try:
        with db_cursor() as (_conn, cursor):
            ledger = repository.fetch_counterparty_ledger(cursor, tenant_id, SIDES[side], counterparty_id)
        balance = compute_counterparty_balance(counterparty_id, reference_date, *ledger)
    except Exception as e:
        return _server_error('Calcul du solde', e)

    return jsonify({'success': True, 'balance': balance.to_dict()})


@app.route('/api/stock/movements', methods=['POST'])
def upsert_movement():
    """Crée ou met à jour le mouvement de stock d'un (document, produit)."""
    data = _json_body()
    errors = validate_movement(data)
    tenant_id = None
    if is_db_enabled():
        tenant_id, tenant_errors = _require_tenant(data)
        errors.extend(tenant_errors)
    if errors:
        return _errors_response(errors)

    key = movement_key_from_payload(data)
    movement_date = parse_date(data.get('movement_date'), default=date.today())
    direction = MovementDirection(data['direction'])

    try:
        if is_db_enabled():
            movement = StockMovement(key, direction, to_decimal(data['quantity']), movement_date)
            with db_transaction() as (_conn, cursor):
                repository.upsert_stock_movement(cursor, tenant_id, movement)
        else:
            movement = STOCK_LEDGER.upsert_movement(key, data['quantity'], direction, movement_date)
    except GestionError as e:
        return _errors_response([e.to_dict()])
    except Exception as e:
        return _server_error('Mouvement de stock', e)

    return jsonify({'success': True, 'movement': movement.to_dict()})


@app.route('/api/stock/movements', methods=['DELETE'])
def delete_movement():
    """Supprime le mouvement d'un document annulé ou repassé en brouillon."""
    data = _json_body()
    errors = [
        {'field': key, 'message': f'Le champ {key} est obligatoire'}
        for key in ('source_type', 'source_id', 'product_id')
        if not str(data.get(key) or '').strip()
    ]
    tenant_id = None
    if is_db_enabled():
        tenant_id, tenant_errors = _require_tenant(data)
        errors.extend(tenant_errors)
    if errors:
        return _errors_response(errors)

    key = movement_key_from_payload(data)
    try:
        if is_db_enabled():
            with db_transaction() as (_conn, cursor):
                deleted = repository.delete_stock_movement(cursor, tenant_id, key)
        else:
            deleted = STOCK_LEDGER.remove_movement(key) is not None
    except Exception as e:
        return _server_error('Suppression du mouvement', e)

    return jsonify({'success': True, 'deleted': deleted})


@app.route('/api/stock/retarget', methods=['POST'])
def retarget_movements():
    """Réaffecte les mouvements d'un document converti (BL → facture, etc.)."""
    data = _json_body()
    errors = []
    for key in ('source_type', 'source_id', 'target_type', 'target_id'):
        if not str(data.get(key) or '').strip():
            errors.append({'field': key, 'message': f'Le champ {key} est obligatoire'})
    product_ids = data.get('product_ids')
    if not isinstance(product_ids, list) or not product_ids:
        errors.append({'field': 'product_ids', 'message': 'Au moins un produit est requis'})
    tenant_id = None
    if is_db_enabled():
        tenant_id, tenant_errors = _require_tenant(data)
        errors.extend(tenant_errors)
    if errors:
        return _errors_response(errors)

    source_type, source_id = str(data['source_type']), str(data['source_id'])
    target_type, target_id = str(data['target_type']), str(data['target_id'])
    product_ids = [str(p) for p in product_ids]

    try:
        if is_db_enabled():
            anomalies = []
            with db_transaction() as (_conn, cursor):
                for product_id in product_ids:
                    anomaly = repository.retarget_stock_movement(
                        cursor, tenant_id,
                        MovementKey(source_type, source_id, product_id),
                        MovementKey(target_type, target_id, product_id),
                    )
                    if anomaly is not None:
                        anomalies.append(anomaly)
        else:
            anomalies = STOCK_LEDGER.retarget_document(source_type, source_id, target_type,
                                                       target_id, product_ids)
    except Exception as e:
        return _server_error('Réaffectation des mouvements', e)

    return jsonify({
        'success': True,
        'retargeted': len(product_ids) - len(anomalies),
        'warnings': [a.to_dict() for a in anomalies],
    })


@app.route('/api/stock/<product_id>')
def product_stock(product_id):
    """Stock courant d'un produit."""
    if is_db_enabled():
        tenant_id, errors = _require_tenant(request.args)
        if errors:
            return _errors_response(errors)
        try:
            with db_cursor() as (_conn, cursor):
                stock = repository.fetch_current_stock(cursor, tenant_id, product_id)
        except Exception as e:
            return _server_error('Lecture du stock', e)
    else:
        stock = STOCK_LEDGER.current_stock(product_id)

    return jsonify({'product_id': product_id, 'stock': str(stock)})


if __name__ == '__main__':
    # Valider la configuration au démarrage
    validate_startup_config()
    app.run(debug=True, port=5000)
