"""
Erreurs métier du moteur de calcul.

Chaque erreur porte le champ concerné et un message lisible, restitués
tels quels par l'API (réponse 400).
"""

from dataclasses import dataclass


class GestionError(Exception):
    """Erreur métier de base."""

    field = '_form'

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        if field is not None:
            self.field = field

    def to_dict(self) -> dict:
        return {'field': self.field, 'message': self.message}


class OverpaymentError(GestionError):
    """Le montant demandé dépasse le solde restant de la facture."""

    field = 'amount'


class InvalidInvoiceError(GestionError):
    """Facture inexistante, annulée ou de montant nul/négatif."""

    field = 'invoice_id'


class InvalidAmountError(GestionError):
    field = 'amount'


class InsufficientAdvanceError(GestionError):
    """L'avance utilisée dépasse le solde d'avance disponible."""

    field = 'advance_used'


class NegativeQuantityRejected(GestionError):
    """Quantité négative sur une réception, une livraison ou un mouvement."""

    field = 'quantity'


@dataclass(frozen=True)
class StockMovementAnomaly:
    """Mouvement source introuvable lors d'une conversion de document.

    Ce n'est pas une exception : l'opération englobante continue et
    l'anomalie est remontée comme avertissement.
    """

    source_type: str
    source_id: str
    product_id: str
    target_type: str
    target_id: str

    @property
    def message(self) -> str:
        return (
            f"Aucun mouvement de stock trouvé pour {self.source_type} {self.source_id} "
            f"(produit {self.product_id}) lors de la conversion en "
            f"{self.target_type} {self.target_id}"
        )

    def to_dict(self) -> dict:
        return {
            'type': 'stock_movement_anomaly',
            'product_id': self.product_id,
            'message': self.message,
        }
