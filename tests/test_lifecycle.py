"""Tests for the LifecycleCoordinator state machine."""

import asyncio
import threading
from datetime import datetime

import pytest
from sqlalchemy import delete, update
from sqlalchemy.orm import sessionmaker

from conftest import Factory
from courier_dispatch.config.database import create_database_engine, init_database
from courier_dispatch.core.exceptions import (
    CourierNotFound, CourierUnavailable, DeliveryNotFound, InvalidTransition, OwnPackage,
    PackageLinkMissing, PackageNotAvailable, PackageNotFound, PackageStatusDrift, RouteNotSet,
    UserNotFound
)
from courier_dispatch.modules.deliveries.service import (
    DELIVERY_TRANSITIONS, PACKAGE_STATUS_FOR, LifecycleCoordinator
)
from courier_dispatch.modules.matching.service import MatchingEngine
from courier_dispatch.shared.database.models import (
    Base, Delivery, DeliveryStatus, Package, PackageStatus
)


@pytest.fixture
def coordinator(db):
    return LifecycleCoordinator(db)


def package_status(db, package_id):
    return db.get(Package, package_id).status


def live_deliveries(db, package_id):
    return db.query(Delivery).filter(
        Delivery.package_id == package_id,
        Delivery.status != DeliveryStatus.CANCELLED.value
    ).count()


class TestTransitionTable:
    def test_terminal_states_have_no_exits(self):
        assert DELIVERY_TRANSITIONS[DeliveryStatus.DELIVERED] == frozenset()
        assert DELIVERY_TRANSITIONS[DeliveryStatus.CANCELLED] == frozenset()

    def test_every_delivery_status_has_a_package_status(self):
        assert set(PACKAGE_STATUS_FOR) == set(DeliveryStatus)
        assert PACKAGE_STATUS_FOR[DeliveryStatus.PICKED_UP] == PackageStatus.IN_TRANSIT
        assert PACKAGE_STATUS_FOR[DeliveryStatus.CANCELLED] == PackageStatus.PENDING


class TestFullLifecycle:
    @pytest.mark.asyncio
    async def test_pending_to_delivered(self, db, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package()
        package_id = package.id

        delivery = await coordinator.assign(package_id, courier.id)
        assert delivery.status == DeliveryStatus.ASSIGNED.value
        assert delivery.assigned_at is not None
        assert package_status(db, package_id) == PackageStatus.ASSIGNED.value

        delivery = await coordinator.advance(delivery.id, DeliveryStatus.PICKED_UP)
        assert delivery.status == DeliveryStatus.PICKED_UP.value
        assert delivery.pickup_time is not None
        assert package_status(db, package_id) == PackageStatus.IN_TRANSIT.value

        delivery = await coordinator.advance(delivery.id, "delivered")
        assert delivery.status == DeliveryStatus.DELIVERED.value
        assert delivery.delivery_time is not None
        assert package_status(db, package_id) == PackageStatus.DELIVERED.value

        for target in ("picked_up", "delivered", "assigned"):
            with pytest.raises(InvalidTransition):
                await coordinator.advance(delivery.id, target)
        assert coordinator.get(delivery.id).status == DeliveryStatus.DELIVERED.value
        assert package_status(db, package_id) == PackageStatus.DELIVERED.value

    @pytest.mark.asyncio
    async def test_snapshot_addresses(self, db, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package()

        delivery = await coordinator.assign(package.id, courier.id)

        assert delivery.pickup_address_id == package.pickup_address_id
        assert delivery.dropoff_address_id == package.dropoff_address_id

    @pytest.mark.asyncio
    async def test_explicit_timestamps(self, coordinator, factory):
        courier = factory.routed_courier()
        delivery = await coordinator.assign(factory.package().id, courier.id)
        picked_up_at = datetime(2024, 5, 1, 9, 30)
        delivered_at = datetime(2024, 5, 1, 11, 0)

        await coordinator.advance(delivery.id, DeliveryStatus.PICKED_UP, picked_up_at)
        delivery = await coordinator.advance(delivery.id, DeliveryStatus.DELIVERED, delivered_at)

        assert (delivery.pickup_time, delivery.delivery_time) == (picked_up_at, delivered_at)


class TestInvalidTransitions:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["delivered", "assigned", "cancelled", "lost", ""])
    async def test_from_assigned(self, db, coordinator, factory, target):
        courier = factory.routed_courier()
        package = factory.package()
        delivery = await coordinator.assign(package.id, courier.id)

        with pytest.raises(InvalidTransition):
            await coordinator.advance(delivery.id, target)

        delivery = coordinator.get(delivery.id)
        assert delivery.status == DeliveryStatus.ASSIGNED.value
        assert delivery.pickup_time is None and delivery.delivery_time is None
        assert package_status(db, package.id) == PackageStatus.ASSIGNED.value

    @pytest.mark.asyncio
    async def test_unknown_delivery(self, coordinator):
        with pytest.raises(DeliveryNotFound):
            await coordinator.advance(123, DeliveryStatus.PICKED_UP)


class TestAssignPreconditions:
    @pytest.mark.asyncio
    async def test_unknown_courier_and_package(self, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package()
        with pytest.raises(CourierNotFound):
            await coordinator.assign(package.id, 999)
        with pytest.raises(PackageNotFound):
            await coordinator.assign(999, courier.id)

    @pytest.mark.asyncio
    async def test_unavailable_courier(self, db, coordinator, factory):
        courier = factory.routed_courier(availability=False)
        package = factory.package()
        with pytest.raises(CourierUnavailable):
            await coordinator.assign(package.id, courier.id)
        assert package_status(db, package.id) == PackageStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_courier_without_route(self, coordinator, factory):
        courier = factory.courier()
        with pytest.raises(RouteNotSet):
            await coordinator.assign(factory.package().id, courier.id)

    @pytest.mark.asyncio
    async def test_own_package(self, db, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package(owner=courier.user)
        with pytest.raises(OwnPackage):
            await coordinator.assign(package.id, courier.id)

    @pytest.mark.asyncio
    async def test_package_already_claimed(self, db, coordinator, factory):
        first = factory.routed_courier()
        second = factory.routed_courier()
        package = factory.package()

        await coordinator.assign(package.id, first.id)
        with pytest.raises(PackageNotAvailable) as exc_info:
            await coordinator.assign(package.id, second.id)

        assert exc_info.value.status == PackageStatus.ASSIGNED.value
        assert live_deliveries(db, package.id) == 1

    @pytest.mark.asyncio
    async def test_claim_checks_stored_status_not_loaded_one(self, db, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package()
        assert package.status == PackageStatus.PENDING.value

        # Another writer takes the package; the loaded object still says pending
        table = Package.__table__
        db.execute(update(table).where(table.c.id == package.id).values(status=PackageStatus.ASSIGNED.value))

        with pytest.raises(PackageNotAvailable):
            await coordinator.assign(package.id, courier.id)

        assert db.query(Delivery).count() == 0


class TestCancel:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("picked_up", [False, True])
    async def test_cancel_reopens_package(self, db, coordinator, factory, picked_up):
        courier = factory.routed_courier()
        package = factory.package()
        delivery = await coordinator.assign(package.id, courier.id)
        if picked_up:
            await coordinator.advance(delivery.id, DeliveryStatus.PICKED_UP)

        delivery = await coordinator.cancel(delivery.id)

        assert delivery.status == DeliveryStatus.CANCELLED.value
        assert delivery.cancelled_at is not None
        assert package_status(db, package.id) == PackageStatus.PENDING.value
        assert db.query(Delivery).count() == 1
        assert live_deliveries(db, package.id) == 0

    @pytest.mark.asyncio
    async def test_cancel_terminal_delivery(self, coordinator, factory):
        courier = factory.routed_courier()
        delivery = await coordinator.assign(factory.package().id, courier.id)
        await coordinator.cancel(delivery.id)

        with pytest.raises(InvalidTransition):
            await coordinator.cancel(delivery.id)
        with pytest.raises(InvalidTransition):
            await coordinator.advance(delivery.id, DeliveryStatus.PICKED_UP)

    @pytest.mark.asyncio
    async def test_cannot_cancel_delivered(self, db, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package()
        delivery = await coordinator.assign(package.id, courier.id)
        await coordinator.advance(delivery.id, DeliveryStatus.PICKED_UP)
        await coordinator.advance(delivery.id, DeliveryStatus.DELIVERED)

        with pytest.raises(InvalidTransition):
            await coordinator.cancel(delivery.id)
        assert package_status(db, package.id) == PackageStatus.DELIVERED.value

    @pytest.mark.asyncio
    async def test_cancelled_package_matches_again(self, db, geocoder, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package()
        matcher = MatchingEngine(db, geocoder)

        delivery = await coordinator.assign(package.id, courier.id)
        assert await matcher.find_candidates(courier.user_id) == []

        await coordinator.cancel(delivery.id)
        assert [p.id for p in await matcher.find_candidates(courier.user_id)] == [package.id]

    @pytest.mark.asyncio
    async def test_reassign_after_cancel(self, db, coordinator, factory):
        first = factory.routed_courier()
        second = factory.routed_courier()
        package = factory.package()

        cancelled = await coordinator.assign(package.id, first.id)
        await coordinator.cancel(cancelled.id)
        delivery = await coordinator.assign(package.id, second.id)

        assert delivery.id != cancelled.id
        assert delivery.courier_id == second.id
        assert live_deliveries(db, package.id) == 1


class TestConsistencyErrors:
    @pytest.mark.asyncio
    async def test_missing_package_is_fatal(self, db, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package()
        delivery = await coordinator.assign(package.id, courier.id)
        db.execute(delete(Package.__table__).where(Package.__table__.c.id == package.id))
        db.commit()

        with pytest.raises(PackageLinkMissing):
            await coordinator.advance(delivery.id, DeliveryStatus.PICKED_UP)

        delivery = coordinator.get(delivery.id)
        assert delivery.status == DeliveryStatus.ASSIGNED.value
        assert delivery.pickup_time is None

    @pytest.mark.asyncio
    async def test_package_status_drift(self, db, coordinator, factory):
        courier = factory.routed_courier()
        package = factory.package()
        delivery = await coordinator.assign(package.id, courier.id)
        table = Package.__table__
        db.execute(update(table).where(table.c.id == package.id).values(status=PackageStatus.PENDING.value))
        db.commit()

        with pytest.raises(PackageStatusDrift) as exc_info:
            await coordinator.cancel(delivery.id)

        assert exc_info.value.expected == PackageStatus.ASSIGNED.value
        assert coordinator.get(delivery.id).status == DeliveryStatus.ASSIGNED.value


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_for_courier_and_owner(self, coordinator, factory):
        courier = factory.routed_courier()
        sender = factory.user("sender")
        bystander = factory.user("bystander")
        first = await coordinator.assign(factory.package(owner=sender).id, courier.id)
        second = await coordinator.assign(factory.package().id, courier.id)

        assert [d.id for d in coordinator.history(courier.user_id)] == [second.id, first.id]
        assert [d.id for d in coordinator.history(sender.id)] == [first.id]
        assert coordinator.history(bystander.id) == []

    def test_history_unknown_user(self, coordinator):
        with pytest.raises(UserNotFound):
            coordinator.history(404)


def test_concurrent_assign_has_one_winner(tmp_path):
    """Two sessions race for one package on a real file database"""
    engine = create_database_engine(f"sqlite:///{tmp_path / 'dispatch.db'}", sqlite_begin="BEGIN IMMEDIATE")
    init_database(engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    with Session() as setup:
        factory = Factory(setup)
        package_id = factory.package().id
        courier_ids = [factory.routed_courier().id, factory.routed_courier().id]

    barrier = threading.Barrier(len(courier_ids))
    winners, losers = [], []

    def claim(courier_id):
        with Session() as session:
            barrier.wait()
            try:
                delivery = asyncio.run(LifecycleCoordinator(session).assign(package_id, courier_id))
                winners.append(delivery.id)
            except Exception as e:
                losers.append(e)

    threads = [threading.Thread(target=claim, args=(courier_id,)) for courier_id in courier_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert len(winners) == 1
    assert len(losers) == 1 and isinstance(losers[0], PackageNotAvailable)

    with Session() as check:
        assert check.query(Delivery).filter(Delivery.package_id == package_id).count() == 1
        assert check.get(Package, package_id).status == PackageStatus.ASSIGNED.value

    Base.metadata.drop_all(engine)
    engine.dispose()
