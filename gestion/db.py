"""
Context managers pour les connexions PostgreSQL.
"""

import os
from contextlib import contextmanager


def get_db_connection():
    """Ouvre une connexion PostgreSQL (transaction explicite)."""
    import psycopg2
    conn = psycopg2.connect(
        host=os.environ.get('DB_URL', 'localhost'),
        port=os.environ.get('DB_PORT', '5432'),
        dbname=os.environ.get('DB_NAME', 'gestion_commerciale'),
        user=os.environ.get('DB_USER', 'postgres'),
        password=os.environ.get('DB_PASS', ''),
    )
    conn.autocommit = False
    return conn


@contextmanager
def db_cursor():
    """Lecture seule : yield (conn, cursor), rollback et fermeture en sortie."""
    conn = get_db_connection()
    cursor = conn.cursor()
    try:
        yield conn, cursor
    finally:
        cursor.close()
        if not conn.closed:
            conn.rollback()
            conn.close()


@contextmanager
def db_transaction():
    """
    Transaction d'écriture : commit si le bloc se termine normalement,
    rollback sur exception (les verrous FOR UPDATE sont alors relâchés).
    """
    conn = get_db_connection()
    cursor = conn.cursor()
    try:
        yield conn, cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
        if not conn.closed:
            conn.close()
