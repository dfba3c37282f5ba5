"""Product data handed to the cart by the catalogue.

Products live in an external catalogue; the cart only needs the fields it
snapshots onto a line item at add-time.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float
    vendor_id: str
    vendor_name: str
    water_quantity: float = 0.0  # Litres per unit
    image: str = ""
