"""
Rapprochement des mouvements de stock : un seul mouvement par
(type de document, document, produit).

Valider deux fois un document ne double pas son effet sur le stock, et la
conversion d'un document (BL → facture, réception → facture) réaffecte le
mouvement existant au lieu d'en créer un second.
"""

import threading
from datetime import date
from decimal import Decimal
from typing import Optional

from gestion.errors import NegativeQuantityRejected, StockMovementAnomaly
from gestion.models import MovementDirection, MovementKey, StockMovement
from gestion.money import ZERO, to_decimal


class StockLedger:
    """Registre des mouvements de stock, indexé par clé naturelle."""

    def __init__(self):
        self._movements = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._movements)

    def get(self, key: MovementKey) -> Optional[StockMovement]:
        return self._movements.get(key)

    def upsert_movement(self, key: MovementKey, quantity, direction: MovementDirection,
                        movement_date: Optional[date] = None) -> StockMovement:
        """Met à jour le mouvement de la clé s'il existe, sinon le crée."""
        quantity = to_decimal(quantity)
        if quantity < 0:
            raise NegativeQuantityRejected(
                f"Quantité négative refusée pour le produit {key.product_id} ({quantity})"
            )

        movement = StockMovement(
            key=key,
            direction=MovementDirection(direction),
            quantity=quantity,
            movement_date=movement_date,
        )
        with self._lock:
            self._movements[key] = movement
        return movement

    def remove_movement(self, key: MovementKey) -> Optional[StockMovement]:
        """Supprime le mouvement d'un document annulé ou repassé en brouillon."""
        with self._lock:
            return self._movements.pop(key, None)

    def retarget(self, old_key: MovementKey, new_key: MovementKey) -> Optional[StockMovementAnomaly]:
        """
        Réaffecte le mouvement de old_key au document new_key.

        Si aucun mouvement n'existe pour old_key, rien n'est créé : l'anomalie
        est journalisée et retournée à l'appelant.
        """
        with self._lock:
            movement = self._movements.pop(old_key, None)
            if movement is None:
                anomaly = StockMovementAnomaly(
                    source_type=old_key.source_type,
                    source_id=old_key.source_id,
                    product_id=old_key.product_id,
                    target_type=new_key.source_type,
                    target_id=new_key.source_id,
                )
                print(f"[WARNING] {anomaly.message}, aucun mouvement créé")
                return anomaly

            # Un mouvement déjà présent sous new_key est remplacé
            self._movements[new_key] = StockMovement(
                key=new_key,
                direction=movement.direction,
                quantity=movement.quantity,
                movement_date=movement.movement_date,
            )
        return None

    def retarget_document(self, source_type: str, source_id: str, target_type: str,
                          target_id: str, product_ids: list[str]) -> list[StockMovementAnomaly]:
        """Réaffecte les mouvements de tous les produits d'un document converti."""
        anomalies = []
        for product_id in product_ids:
            anomaly = self.retarget(
                MovementKey(source_type, source_id, product_id),
                MovementKey(target_type, target_id, product_id),
            )
            if anomaly is not None:
                anomalies.append(anomaly)
        return anomalies

    def movements_for(self, product_id: str) -> list[StockMovement]:
        with self._lock:
            return [m for m in self._movements.values() if m.key.product_id == product_id]

    def current_stock(self, product_id: str) -> Decimal:
        """Stock courant : entrées et inventaires ajoutés, sorties retranchées."""
        return sum((m.signed_quantity for m in self.movements_for(product_id)), ZERO)
