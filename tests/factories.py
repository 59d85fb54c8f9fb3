"""
Seed helpers shared by the test modules.
"""
from datetime import date

from app.core.security import create_access_token
from app.models import Product, Carton, CartonContent, CartonLocation, CartonStatus
from app.services import LedgerService, ShipmentService


def auth_headers(user, settings):
    token = create_access_token(
        {"sub": str(user.id), "username": user.username, "role": user.role}, settings
    )
    return {"Authorization": f"Bearer {token}"}


def make_product(db, fnsku="X001P1", name="Trail Sock", pairs_per_box=12, aws=7.0, **kwargs):
    product = Product(
        fnsku=fnsku,
        product_name=name,
        pairs_per_box=pairs_per_box,
        average_weekly_sales=aws,
        **kwargs
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def make_carton(db, number="C1", location=CartonLocation.WML.value, contents=None):
    """contents: list of (product, boxes) received into the carton"""
    carton = Carton(carton_number=number, location=location, status=CartonStatus.IN_STOCK.value)
    db.add(carton)
    db.flush()
    for product, boxes in contents or []:
        LedgerService.receive(db, carton, product.id, boxes)
    db.commit()
    db.refresh(carton)
    return carton


def make_shipment(db, reference="S1", shipment_date=date(2026, 10, 1)):
    return ShipmentService.create_shipment(db, reference, shipment_date)


def line(carton, product, boxes):
    return {"carton_id": carton.id, "product_id": product.id, "boxes_to_send": boxes}


def content_row(db, carton, product):
    db.expire_all()
    return db.query(CartonContent).filter(
        CartonContent.carton_id == carton.id,
        CartonContent.product_id == product.id
    ).one()
