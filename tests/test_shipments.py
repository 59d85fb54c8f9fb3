import itertools
from datetime import date

import pytest

from app.core.exceptions import (
    ValidationError, InvalidStateError, InsufficientStockError,
    DuplicateReferenceError, NotFoundError
)
from app.models import (
    AmazonShipment, ShipmentContent, ShipmentStatus, BoxMovementLog,
    CartonContent, CartonLocation, CartonStatus
)
from app.services import ShipmentService, ReservationService, NoBoxesAddedError
from tests.factories import make_product, make_carton, make_shipment, line, content_row


def shipment_status(db, shipment_id):
    db.expire_all()
    return db.query(AmazonShipment).filter(AmazonShipment.id == shipment_id).one().status


def ledger_snapshot(db):
    db.expire_all()
    return {
        (c.carton_id, c.product_id): (c.boxes_current, c.boxes_sent_to_amazon)
        for c in db.query(CartonContent).all()
    }


class TestCreate:
    
    def test_create_starts_prepared(self, db):
        shipment = make_shipment(db, "FBA-001")
        assert shipment.status == ShipmentStatus.PREPARED.value
        assert shipment.shipment_date == date(2026, 10, 1)
    
    def test_duplicate_reference_is_rejected(self, db):
        make_shipment(db, "FBA-001")
        with pytest.raises(DuplicateReferenceError):
            make_shipment(db, "FBA-001")
        assert db.query(AmazonShipment).count() == 1
    
    def test_blank_reference_is_rejected(self, db):
        with pytest.raises(ValidationError):
            ShipmentService.create_shipment(db, "   ", date(2026, 10, 1))


class TestAddBoxes:
    
    def test_reserve_send_recall_walkthrough(self, db, product, carton):
        s1 = make_shipment(db, "S1")
        result = ShipmentService.add_boxes(db, s1.id, [line(carton, product, 6)])
        assert result.added_count == 1
        
        s2 = make_shipment(db, "S2")
        assert ReservationService.available_for_shipment(db, carton.id, product.id, exclude_shipment_id=s2.id) == 4
        
        with pytest.raises(NoBoxesAddedError) as exc_info:
            ShipmentService.add_boxes(db, s2.id, [line(carton, product, 5)])
        assert exc_info.value.result.lines[0].error_code == InsufficientStockError.code
        assert "errors" in exc_info.value.details
        assert db.query(ShipmentContent).filter(ShipmentContent.shipment_id == s2.id).count() == 0
        
        ShipmentService.send_shipment(db, s1.id)
        row = content_row(db, carton, product)
        assert (row.boxes_current, row.boxes_sent_to_amazon) == (4, 6)
        assert shipment_status(db, s1.id) == ShipmentStatus.SENT.value
        
        ShipmentService.recall_shipment(db, s1.id, notes="Wrong labels")
        row = content_row(db, carton, product)
        assert (row.boxes_current, row.boxes_sent_to_amazon) == (10, 0)
        assert shipment_status(db, s1.id) == ShipmentStatus.RECALLED.value
    
    def test_partial_success_commits_valid_lines(self, db, product, carton):
        other = make_product(db, fnsku="X002", name="Other")
        s1 = make_shipment(db)
        
        result = ShipmentService.add_boxes(db, s1.id, [
            line(carton, product, 3),
            line(carton, product, 0),
            line(carton, other, 1),
            {"carton_id": 999, "product_id": product.id, "boxes_to_send": 1},
        ])
        
        assert result.added_count == 1
        assert [l.success for l in result.lines] == [True, False, False, False]
        assert result.lines[1].error_code == ValidationError.code
        assert result.lines[2].error_code == NotFoundError.code
        assert result.lines[3].error_code == NotFoundError.code
        assert len(result.errors) == 3
        assert db.query(ShipmentContent).filter(ShipmentContent.shipment_id == s1.id).count() == 1
    
    def test_malformed_lines_fail_individually(self, db, product, carton):
        s1 = make_shipment(db)
        
        result = ShipmentService.add_boxes(db, s1.id, [
            {"carton_id": carton.id, "product_id": product.id},
            {"carton_id": "C-one", "product_id": product.id, "boxes_to_send": 1},
            "not a line",
            line(carton, product, 2),
        ])
        
        assert result.added_count == 1
        assert [l.success for l in result.lines] == [False, False, False, True]
        assert all(l.error_code == ValidationError.code for l in result.lines[:3])
        assert "boxes_to_send" in result.lines[0].error
        assert result.lines[1].carton_id == "C-one"
        assert content_row(db, carton, product).boxes_current == 10
        assert ReservationService.reserved_boxes(db, carton.id, product.id) == 2
    
    def test_repeated_adds_accumulate_into_one_row(self, db, product, carton):

        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 3)])
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 4)])
        
        rows = db.query(ShipmentContent).filter(ShipmentContent.shipment_id == s1.id).all()
        assert len(rows) == 1
        assert rows[0].boxes_sent == 7
    
    def test_own_reservation_counts_against_further_adds(self, db, product, carton):
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 8)])
        with pytest.raises(NoBoxesAddedError):
            ShipmentService.add_boxes(db, s1.id, [line(carton, product, 3)])
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 2)])
        assert ReservationService.reserved_boxes(db, carton.id, product.id) == 10
    
    def test_lines_in_one_call_see_each_other(self, db, product, carton):
        s1 = make_shipment(db)
        result = ShipmentService.add_boxes(db, s1.id, [line(carton, product, 7), line(carton, product, 7)])
        assert [l.success for l in result.lines] == [True, False]
        assert ReservationService.reserved_boxes(db, carton.id, product.id) == 7
    
    def test_archived_carton_line_fails(self, db, product, carton):
        carton.status = CartonStatus.ARCHIVED.value
        db.commit()
        s1 = make_shipment(db)
        with pytest.raises(NoBoxesAddedError) as exc_info:
            ShipmentService.add_boxes(db, s1.id, [line(carton, product, 1)])
        assert exc_info.value.result.lines[0].error_code == InvalidStateError.code
    
    def test_only_prepared_shipments_accept_boxes(self, db, product, carton):
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 1)])
        ShipmentService.send_shipment(db, s1.id)
        with pytest.raises(InvalidStateError):
            ShipmentService.add_boxes(db, s1.id, [line(carton, product, 1)])
    
    def test_unknown_shipment(self, db, product, carton):
        with pytest.raises(NotFoundError):
            ShipmentService.add_boxes(db, 404, [line(carton, product, 1)])


class TestRemoveAndDelete:
    
    def test_remove_boxes_releases_reservation(self, db, product, carton):
        s1 = make_shipment(db)
        result = ShipmentService.add_boxes(db, s1.id, [line(carton, product, 6)])
        released = ShipmentService.remove_boxes(db, s1.id, result.lines[0].shipment_content_id)
        
        assert released == 6
        assert ReservationService.reserved_boxes(db, carton.id, product.id) == 0
        assert content_row(db, carton, product).boxes_current == 10
    
    def test_remove_boxes_from_other_shipment_is_not_found(self, db, product, carton):
        s1 = make_shipment(db, "S1")
        s2 = make_shipment(db, "S2")
        result = ShipmentService.add_boxes(db, s1.id, [line(carton, product, 1)])
        with pytest.raises(NotFoundError):
            ShipmentService.remove_boxes(db, s2.id, result.lines[0].shipment_content_id)
    
    def test_delete_prepared_shipment(self, db, product, carton):
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 6)])
        result = ShipmentService.delete_shipment(db, s1.id)
        
        assert result["content_entries_removed"] == 1
        assert db.query(AmazonShipment).count() == 0
        assert db.query(ShipmentContent).count() == 0
        assert content_row(db, carton, product).boxes_current == 10
    
    def test_sent_shipment_cannot_be_deleted(self, db, product, carton):
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 1)])
        ShipmentService.send_shipment(db, s1.id)
        with pytest.raises(InvalidStateError):
            ShipmentService.delete_shipment(db, s1.id)
        with pytest.raises(InvalidStateError):
            ShipmentService.remove_boxes(db, s1.id, 1)


class TestSendAndRecall:
    
    def test_send_empty_shipment_fails(self, db):
        s1 = make_shipment(db)
        with pytest.raises(ValidationError):
            ShipmentService.send_shipment(db, s1.id)
        assert shipment_status(db, s1.id) == ShipmentStatus.PREPARED.value
    
    def test_send_is_all_or_nothing(self, db, product):
        other = make_product(db, fnsku="X002", name="Other")
        c1 = make_carton(db, "C1", CartonLocation.WML.value, [(product, 5)])
        c2 = make_carton(db, "C2", CartonLocation.GMR.value, [(other, 5)])
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(c1, product, 5), line(c2, other, 5)])
        
        # Stock leaves C2 behind the shipment's back
        row = content_row(db, c2, other)
        row.boxes_current = 2
        db.commit()
        
        before = ledger_snapshot(db)
        with pytest.raises(InsufficientStockError):
            ShipmentService.send_shipment(db, s1.id)
        
        assert ledger_snapshot(db) == before
        assert shipment_status(db, s1.id) == ShipmentStatus.PREPARED.value
        assert db.query(BoxMovementLog).filter(BoxMovementLog.shipment_id == s1.id).count() == 0
    
    def test_send_summary_and_movements(self, db, product, carton):
        s1 = make_shipment(db, "FBA-7")
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 10)])
        summary = ShipmentService.send_shipment(db, s1.id)
        
        assert summary.total_boxes == 10
        assert summary.carton_list == ["C1"]
        assert summary.product_list == ["Trail Sock"]
        assert summary.cartons_emptied == ["C1"]
        
        movements = db.query(BoxMovementLog).filter(BoxMovementLog.shipment_id == s1.id).all()
        assert [(m.movement_type, m.boxes) for m in movements] == [("sent_to_amazon", -10)]
    
    def test_emptiness_round_trip(self, db, product, carton):
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 10)])
        ShipmentService.send_shipment(db, s1.id)
        db.refresh(carton)
        assert carton.status == CartonStatus.EMPTY.value
        
        ShipmentService.recall_shipment(db, s1.id)
        db.refresh(carton)
        assert carton.status == CartonStatus.IN_STOCK.value
    
    def test_recall_appends_note(self, db, product, carton):
        s1 = ShipmentService.create_shipment(db, "S1", date(2026, 10, 1), notes="First pallet")
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 2)])
        ShipmentService.send_shipment(db, s1.id)
        ShipmentService.recall_shipment(db, s1.id, notes="Damaged")
        
        db.expire_all()
        notes = db.query(AmazonShipment).filter(AmazonShipment.id == s1.id).one().notes
        assert notes.startswith("First pallet\n\nRecalled ")
        assert notes.endswith(": Damaged")
    
    def test_conservation_over_send_and_recall(self, db, product):
        other = make_product(db, fnsku="X002", name="Other", pairs_per_box=6)
        c1 = make_carton(db, "C1", CartonLocation.WML.value, [(product, 8), (other, 3)])
        c2 = make_carton(db, "C2", CartonLocation.GMR.value, [(product, 4)])
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(c1, product, 5), line(c1, other, 3), line(c2, product, 4)])
        
        def totals():
            return {key: sum(value) for key, value in ledger_snapshot(db).items()}
        
        before = totals()
        ShipmentService.send_shipment(db, s1.id)
        assert totals() == before
        ShipmentService.recall_shipment(db, s1.id)
        assert totals() == before
        assert all(sent == 0 for _, sent in ledger_snapshot(db).values())
    
    @pytest.mark.parametrize("status", [ShipmentStatus.SENT, ShipmentStatus.RECALLED])
    def test_send_requires_prepared(self, db, product, carton, status):
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 2)])
        ShipmentService.send_shipment(db, s1.id)
        if status == ShipmentStatus.RECALLED:
            ShipmentService.recall_shipment(db, s1.id)
        
        before = ledger_snapshot(db)
        movements = db.query(BoxMovementLog).count()
        with pytest.raises(InvalidStateError):
            ShipmentService.send_shipment(db, s1.id)
        assert ledger_snapshot(db) == before
        assert db.query(BoxMovementLog).count() == movements
    
    @pytest.mark.parametrize("send_first,recall_first", [(False, False), (True, True)])
    def test_recall_requires_sent(self, db, product, carton, send_first, recall_first):
        s1 = make_shipment(db)
        ShipmentService.add_boxes(db, s1.id, [line(carton, product, 2)])
        if send_first:
            ShipmentService.send_shipment(db, s1.id)
        if recall_first:
            ShipmentService.recall_shipment(db, s1.id)
        
        before = ledger_snapshot(db)
        with pytest.raises(InvalidStateError):
            ShipmentService.recall_shipment(db, s1.id)
        assert ledger_snapshot(db) == before


def test_no_oversell_across_prepared_shipments(db, product, carton):
    shipments = [make_shipment(db, f"S{i}") for i in range(4)]
    requests = [3, 4, 2, 5, 1, 6, 2, 1]
    
    for shipment, boxes in zip(itertools.cycle(shipments), requests):
        try:
            ShipmentService.add_boxes(db, shipment.id, [line(carton, product, boxes)])
        except NoBoxesAddedError:
            pass
        reserved = db.query(ShipmentContent).filter(
            ShipmentContent.carton_id == carton.id,
            ShipmentContent.product_id == product.id
        ).all()
        assert sum(r.boxes_sent for r in reserved) <= 10
    
    assert ReservationService.reserved_boxes(db, carton.id, product.id) == 10


def test_shipment_listing_and_details(db, product, carton):
    s1 = make_shipment(db, "S1")
    ShipmentService.add_boxes(db, s1.id, [line(carton, product, 4)])
    
    listing = ShipmentService.get_shipments(db)
    assert listing[0]["total_boxes"] == 4
    assert listing[0]["carton_count"] == 1
    assert ShipmentService.get_shipments(db, status="sent") == []
    with pytest.raises(ValidationError):
        ShipmentService.get_shipments(db, status="lost")
    
    details = ShipmentService.get_shipment_details(db, s1.id)
    assert details["summary"]["total_pairs"] == 48
    assert details["contents"][0]["carton_number"] == "C1"
