import pytest

from app.core.exceptions import NotFoundError
from app.models import CartonLocation, CartonStatus
from app.services import ReservationService, ShipmentService
from tests.factories import make_product, make_carton, make_shipment, line


def test_prepared_shipments_reserve_stock(db, product, carton):
    s1 = make_shipment(db, "S1")
    ShipmentService.add_boxes(db, s1.id, [line(carton, product, 6)])
    
    assert ReservationService.reserved_boxes(db, carton.id, product.id) == 6
    assert ReservationService.available_for_shipment(db, carton.id, product.id) == 4
    # The shipment's own reservation is invisible to itself
    assert ReservationService.available_for_shipment(db, carton.id, product.id, exclude_shipment_id=s1.id) == 10


def test_sent_shipments_no_longer_reserve(db, product, carton):
    s1 = make_shipment(db, "S1")
    ShipmentService.add_boxes(db, s1.id, [line(carton, product, 6)])
    ShipmentService.send_shipment(db, s1.id)
    
    assert ReservationService.reserved_boxes(db, carton.id, product.id) == 0
    assert ReservationService.available_for_shipment(db, carton.id, product.id) == 4


def test_reservation_map_groups_by_pair(db, product, carton):
    s1 = make_shipment(db, "S1")
    s2 = make_shipment(db, "S2")
    ShipmentService.add_boxes(db, s1.id, [line(carton, product, 3)])
    ShipmentService.add_boxes(db, s2.id, [line(carton, product, 2)])
    
    assert ReservationService.reservation_map(db) == {(carton.id, product.id): 5}
    assert ReservationService.reservation_map(db, exclude_shipment_id=s2.id) == {(carton.id, product.id): 3}


def test_available_cartons_lists_only_shippable_stock(db, product, carton):
    make_carton(db, "IN1", CartonLocation.INCOMING.value, [(product, 5)])
    archived = make_carton(db, "AR1", CartonLocation.GMR.value, [(product, 5)])
    archived.status = CartonStatus.ARCHIVED.value
    db.commit()
    
    cartons = ReservationService.get_available_cartons(db)
    assert [c["carton_number"] for c in cartons] == ["C1"]
    entry = cartons[0]["products"][0]
    assert entry["boxes_current"] == 10
    assert entry["boxes_reserved"] == 0
    assert entry["boxes_available_for_shipment"] == 10
    assert entry["pairs_current"] == 120


def test_fully_reserved_carton_is_omitted(db, product, carton):
    s1 = make_shipment(db, "S1")
    ShipmentService.add_boxes(db, s1.id, [line(carton, product, 10)])
    
    assert ReservationService.get_available_cartons(db) == []
    
    editing = ReservationService.get_available_cartons(db, exclude_shipment_id=s1.id)
    assert editing[0]["total_boxes_available_for_shipment"] == 10


def test_available_cartons_unknown_exclude_id(db, product, carton):
    with pytest.raises(NotFoundError):
        ReservationService.get_available_cartons(db, exclude_shipment_id=999)
