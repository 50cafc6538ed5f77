from decimal import Decimal
import threading

from bulkedit.errors import RemoteError
from bulkedit.executor import BatchExecutor
from bulkedit.models import OutcomeStatus, Variant
from bulkedit.operations import parse_operation

from fakes import FakeGateway, make_item

APPEND_SALE = {"field": "title", "mode": "append", "text": "- Sale"}


def test_item_edit_records_planned_values(gateway):
    report = BatchExecutor(gateway).execute_ids(["1", "2"], parse_operation(APPEND_SALE))

    assert [o.status for o in report.outcomes] == [OutcomeStatus.UPDATED, OutcomeStatus.UPDATED]
    assert report.outcomes[0].original_value == "Red Shirt"
    assert report.outcomes[0].new_value == "Red Shirt - Sale"
    assert ("update_item", "1", {"title": "Red Shirt - Sale"}) in gateway.calls


def test_failed_write_does_not_stop_batch(shirts):
    gateway = FakeGateway(shirts, fail_updates={"2"})
    report = BatchExecutor(gateway).execute(shirts, parse_operation(APPEND_SALE))

    assert [o.status for o in report.outcomes] == [
        OutcomeStatus.UPDATED,
        OutcomeStatus.ERROR,
        OutcomeStatus.UPDATED,
    ]
    assert "write rejected for 2" in report.outcomes[1].error_detail
    assert report.error_count == 1 and report.updated_count == 2
    assert not report.aborted


def test_missing_item_becomes_error_outcome(gateway):
    report = BatchExecutor(gateway).execute_ids(["404"], parse_operation(APPEND_SALE))
    assert report.outcomes[0].status is OutcomeStatus.ERROR
    assert "not found" in report.outcomes[0].error_detail


def test_remote_unavailable_aborts_batch(shirts):
    gateway = FakeGateway(shirts, unavailable_on={"2"})
    report = BatchExecutor(gateway).execute_ids(["1", "2", "3"], parse_operation(APPEND_SALE))

    assert report.aborted
    assert report.abort_reason == "token expired"
    assert [o.item_id for o in report.outcomes] == ["1"]
    assert not any(call[1] == "3" for call in gateway.calls)


def test_item_without_variants_is_an_error():
    gateway = FakeGateway([make_item("7", variants=())])
    report = BatchExecutor(gateway).execute_ids(["7"], parse_operation({"field": "sku", "value": "NEW"}))

    outcome = report.outcomes[0]
    assert outcome.status is OutcomeStatus.ERROR
    assert outcome.error_detail == "no variants found for product 7"
    assert not any(call[0] == "update_variants" for call in gateway.calls)


def test_price_edit_writes_every_variant_once():
    variants = (Variant(id="a", price=Decimal("20.00")), Variant(id="b", price=Decimal("10.00")))
    gateway = FakeGateway([make_item("5", variants=variants)])
    op = parse_operation({"field": "price", "mode": "adjustPercent", "direction": "increase", "amount": 10})

    report = BatchExecutor(gateway).execute_ids(["5"], op)

    outcome = report.outcomes[0]
    assert outcome.status is OutcomeStatus.UPDATED
    assert outcome.original_value == (Decimal("20.00"), Decimal("10.00"))
    assert outcome.new_value == (Decimal("22.00"), Decimal("11.00"))
    writes = [call for call in gateway.calls if call[0] == "update_variants"]
    assert writes == [("update_variants", "5", [("a", {"price": Decimal("22.00")}), ("b", {"price": Decimal("11.00")})])]


def test_single_variant_reports_scalar_values(gateway):
    op = parse_operation({"field": "price", "mode": "set", "amount": "10.00"})
    report = BatchExecutor(gateway).execute_ids(["1"], op)
    assert report.outcomes[0].original_value == Decimal("10.00")
    assert report.outcomes[0].new_value == Decimal("10.00")
    assert not report.outcomes[0].changed


def test_skip_unchanged_avoids_write(gateway):
    op = parse_operation({"field": "title", "mode": "replace", "text": "hat", "replacement": "cap"})
    report = BatchExecutor(gateway, skip_unchanged=True).execute_ids(["1"], op)
    assert report.outcomes[0].status is OutcomeStatus.SKIPPED
    assert not any(call[0] == "update_item" for call in gateway.calls)


def test_gateway_reported_value_wins():
    class Echo(FakeGateway):
        def update_item(self, item_id, changes):
            super().update_item(item_id, changes)
            return make_item(item_id, title="Trimmed by remote")

    gateway = Echo([make_item("1", title="Red Shirt")])
    report = BatchExecutor(gateway).execute_ids(["1"], parse_operation(APPEND_SALE))
    assert report.outcomes[0].new_value == "Trimmed by remote"


def test_unexpected_exception_is_isolated(shirts):
    class Broken(FakeGateway):
        def update_item(self, item_id, changes):
            if item_id == "1":
                raise KeyError("boom")
            return super().update_item(item_id, changes)

    report = BatchExecutor(Broken(shirts)).execute(shirts, parse_operation(APPEND_SALE))
    assert report.outcomes[0].status is OutcomeStatus.ERROR
    assert report.updated_count == 2


def test_parallel_execution_keeps_input_order():
    items = [make_item(str(i), title=f"Item {i}") for i in range(20)]
    gateway = FakeGateway(items, fail_updates={"3", "11"})
    report = BatchExecutor(gateway, max_workers=4).execute_ids([item.id for item in items], parse_operation(APPEND_SALE))

    assert [o.item_id for o in report.outcomes] == [item.id for item in items]
    assert report.error_count == 2
    assert report.outcomes[3].status is OutcomeStatus.ERROR


def test_cancellation_keeps_completed_outcomes(shirts):
    cancel = threading.Event()

    class CancelAfterFirst(FakeGateway):
        def update_item(self, item_id, changes):
            result = super().update_item(item_id, changes)
            cancel.set()
            return result

    report = BatchExecutor(CancelAfterFirst(shirts), cancel_event=cancel).execute(shirts, parse_operation(APPEND_SALE))
    assert [o.item_id for o in report.outcomes] == ["1"]
    assert report.cancelled
    assert not report.aborted


def test_remote_error_on_read_is_per_item(shirts):
    class FlakyRead(FakeGateway):
        def get_item(self, item_id):
            if item_id == "2":
                raise RemoteError("timeout")
            return super().get_item(item_id)

    report = BatchExecutor(FlakyRead(shirts)).execute_ids(["1", "2", "3"], parse_operation(APPEND_SALE))
    assert [o.status.value for o in report.outcomes] == ["updated", "error", "updated"]
