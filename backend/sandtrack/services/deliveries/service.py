"""
Delivery lifecycle service.

This module implements DeliveryLifecycleService, the entry point for the
three lifecycle operations (assign, mark in transit, confirm delivery), the
tracking status updates reported by the location integration, and the
read side used by the dispatch board and the traceability report.

Every mutating operation runs as one transaction: all entity writes are
staged in the session and committed together, and any failure rolls the
whole unit of work back before the error is re-raised. Invoice issuance
after a confirmation runs as a separate follow-up transaction.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.clock import Clock, ensure_utc, utc_now
from sandtrack.core.config import Settings, get_settings
from sandtrack.core.exceptions import (
    EntityNotFoundError,
    PreconditionFailedError,
    SandtrackError,
    StateTransitionError,
)
from sandtrack.core.logging import get_logger, log_performance
from sandtrack.database.errors import translate_store_error
from sandtrack.database.models.delivery import Delivery, DeliveryStatusHistory
from sandtrack.database.models.invoice import Invoice
from sandtrack.services.deliveries.checkpoints import (
    CheckpointTrailStrategy,
    LinearRouteTrail,
    Location,
    Route,
)
from sandtrack.services.deliveries.enums import (
    CONFIRMABLE_STATUSES,
    TRACKING_STATUSES,
    DeliveryStatus,
)
from sandtrack.services.deliveries.repository import DeliveryRepository
from sandtrack.services.deliveries.signature import SignatureCapture, build_signature
from sandtrack.services.deliveries.state_machine import DeliveryStateMachine
from sandtrack.services.fleet.ledger import ResourceLedger
from sandtrack.services.invoices.service import InvoiceService
from sandtrack.services.orders.enums import OrderStatus
from sandtrack.services.orders.repository import OrderRepository
from sandtrack.services.quality.repository import QualityRepository
from sandtrack.services.reports.snapshot import DeliverySnapshot
from sandtrack.services.reports.traceability import (
    TraceabilityReport,
    TraceabilityReportBuilder,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfirmationResult:
    """
    Outcome of a delivery confirmation.

    The delivery is always delivered; invoice is None and invoice_error
    carries the reason when the follow-up issuance failed.
    """

    delivery: Delivery
    invoice: Optional[Invoice] = None
    invoice_error: Optional[str] = None


class DeliveryLifecycleService:
    """
    Delivery lifecycle workflow engine.

    Attributes:
        deliveries: Delivery repository
        orders: Order repository
        quality: QC certificate repository
        ledger: Truck and driver availability ledger
        state_machine: Delivery status transitions and history
        trail_strategy: Checkpoint and GPS trail synthesis
        invoices: Follow-up invoice issuance
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
        trail_strategy: Optional[CheckpointTrailStrategy] = None,
        invoice_service: Optional[InvoiceService] = None,
        report_builder: Optional[TraceabilityReportBuilder] = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.clock = clock
        self.deliveries = DeliveryRepository(session)
        self.orders = OrderRepository(session)
        self.quality = QualityRepository(session)
        self.ledger = ResourceLedger(session, self.settings)
        self.state_machine = DeliveryStateMachine(session)
        self.trail_strategy = trail_strategy or LinearRouteTrail.from_settings(self.settings)
        self.invoices = invoice_service or InvoiceService(session, self.settings, clock)
        self.report_builder = report_builder or TraceabilityReportBuilder(self.settings, clock)

    # Lifecycle operations

    async def assign(
        self,
        order_id: uuid.UUID,
        truck_id: uuid.UUID,
        driver_id: uuid.UUID,
    ) -> Delivery:
        """
        Assign a truck and driver to a certified order.

        Creates the delivery, takes the truck and driver out of the pool,
        stamps the truck on the order's certificate and dispatches the order.

        Raises:
            EntityNotFoundError: If the order, truck or driver does not exist
            PreconditionFailedError: If the order is not confirmed or ready,
                has no passing certificate, or the driver is out of hours
                while that limit is enforced
            ConflictError: If the truck or driver is unavailable or engaged
        """
        context = {
            "order_id": str(order_id),
            "truck_id": str(truck_id),
            "driver_id": str(driver_id),
        }

        with log_performance(logger, "assign_delivery", **context):
            try:
                order = await self.orders.get_order(order_id)
                if order is None:
                    raise EntityNotFoundError("Order", order_id)

                if not order.status.is_dispatchable():
                    raise StateTransitionError(
                        f"Order {order.order_number} cannot be dispatched in "
                        f"status {order.status.value}",
                        current=order.status.value,
                        target=OrderStatus.DISPATCHED.value,
                        **context,
                    )

                qc_test = await self.quality.find_passing_qc_test(order_id)
                if qc_test is None:
                    raise PreconditionFailedError(
                        f"Order {order.order_number} has no passing quality certificate",
                        **context,
                    )

                await self.ledger.claim(truck_id, driver_id, order_id)

                now = self.clock()
                delivery = await self.deliveries.create_delivery(
                    order_id=order_id,
                    truck_id=truck_id,
                    driver_id=driver_id,
                    status=DeliveryStatus.ASSIGNED,
                    estimated_arrival=now + timedelta(hours=self.settings.delivery_eta_hours),
                    wait_time_minutes=0,
                    checkpoints=[],
                    gps_track=[],
                    created_at=now,
                    updated_at=now,
                )
                await self.quality.stamp_certificate_truck(qc_test.id, truck_id)
                await self.orders.set_order_status(order_id, OrderStatus.DISPATCHED)
                self.state_machine.record_assignment(delivery, now, metadata=context)

                await self._commit("Failed to assign delivery", **context)
            except SandtrackError as e:
                await self.session.rollback()
                logger.warning("Delivery assignment rejected", error=e.message, **context)
                raise
            except Exception:
                await self.session.rollback()
                raise

        logger.info("Delivery assigned", delivery_id=str(delivery.id), **context)
        return await self.get_delivery(delivery.id)

    async def mark_in_transit(self, delivery_id: uuid.UUID) -> Delivery:
        """
        Move an assigned delivery to in transit.

        On a delivery that is no longer assigned the call is a no-op unless
        ``strict_in_transit_guard`` is enabled, in which case it fails.

        Raises:
            EntityNotFoundError: If the delivery does not exist
            StateTransitionError: If the delivery is not assigned and the
                strict guard is enabled
        """
        with log_performance(logger, "mark_in_transit", delivery_id=str(delivery_id)):
            try:
                delivery = await self._load_delivery(delivery_id)

                if delivery.status != DeliveryStatus.ASSIGNED:
                    if self.settings.strict_in_transit_guard:
                        raise StateTransitionError(
                            f"Delivery is {delivery.status.value}, only assigned "
                            "deliveries can be marked in transit",
                            current=delivery.status.value,
                            target=DeliveryStatus.IN_TRANSIT.value,
                            delivery_id=str(delivery_id),
                        )
                    logger.warning(
                        "Mark in transit ignored",
                        delivery_id=str(delivery_id),
                        status=delivery.status.value,
                    )
                    return delivery

                self.state_machine.apply_transition(
                    delivery,
                    DeliveryStatus.IN_TRANSIT,
                    self.clock(),
                    reason="Truck left the quarry",
                )
                await self._commit("Failed to mark delivery in transit", delivery_id=str(delivery_id))
            except Exception:
                await self.session.rollback()
                raise

        return await self.get_delivery(delivery_id)

    async def record_tracking_status(
        self,
        delivery_id: uuid.UUID,
        status: DeliveryStatus,
    ) -> Delivery:
        """
        Apply a status reported by the location tracking integration.

        Only ``arrived`` and ``delivering`` are accepted; arriving stamps the
        actual arrival time unless it is already set.

        Raises:
            EntityNotFoundError: If the delivery does not exist
            StateTransitionError: If the status is not a tracking status or
                not a forward move from the current status
        """
        with log_performance(
            logger, "record_tracking_status", delivery_id=str(delivery_id), status=status.value
        ):
            try:
                delivery = await self._load_delivery(delivery_id)

                if status not in TRACKING_STATUSES:
                    raise StateTransitionError(
                        f"Tracking cannot set a delivery to {status.value}",
                        current=delivery.status.value,
                        target=status.value,
                        delivery_id=str(delivery_id),
                    )

                self.state_machine.apply_transition(
                    delivery,
                    status,
                    self.clock(),
                    reason="Reported by location tracking",
                )
                await self._commit("Failed to record tracking status", delivery_id=str(delivery_id))
            except Exception:
                await self.session.rollback()
                raise

        return await self.get_delivery(delivery_id)

    async def confirm_delivery(
        self,
        delivery_id: uuid.UUID,
        capture: SignatureCapture,
    ) -> ConfirmationResult:
        """
        Capture proof of delivery and complete the delivery.

        Checks run in order and the first failure wins: signer name and
        title, signature image, delivery status, passing certificate. On
        success the delivery carries the signature, the synthesized trail
        and the wait time; the order is delivered, the truck and driver are
        released (when configured) and the invoice is issued in a follow-up
        transaction.

        Raises:
            EntityNotFoundError: If the delivery does not exist
            ValidationFailedError: If the signature capture is incomplete
            StateTransitionError: If the delivery is not in transit or arrived
            PreconditionFailedError: If the order has no passing certificate
        """
        with log_performance(logger, "confirm_delivery", delivery_id=str(delivery_id)):
            try:
                delivery = await self._load_delivery(delivery_id)
                order = delivery.order
                route = Route.for_order(order, self.settings)
                now = self.clock()

                signature = build_signature(
                    capture,
                    captured_at=now,
                    location=Location(lat=route.well.lat, lng=route.well.lng),
                )

                if delivery.status not in CONFIRMABLE_STATUSES:
                    raise StateTransitionError(
                        f"Delivery is {delivery.status.value} and cannot be confirmed",
                        current=delivery.status.value,
                        target=DeliveryStatus.DELIVERED.value,
                        delivery_id=str(delivery_id),
                    )

                qc_test = await self.quality.find_passing_qc_test(order.id)
                if qc_test is None:
                    raise PreconditionFailedError(
                        f"Order {order.order_number} has no passing quality certificate",
                        delivery_id=str(delivery_id),
                        order_id=str(order.id),
                    )

                trail = self.trail_strategy.build(route, now)
                await self.deliveries.update_delivery(
                    delivery_id,
                    {
                        "wait_time_minutes": self._wait_time_minutes(delivery, now),
                        "signature": signature.model_dump(mode="json"),
                        "checkpoints": [cp.model_dump(mode="json") for cp in trail.checkpoints],
                        "gps_track": [p.model_dump(mode="json") for p in trail.gps_track],
                    },
                )
                self.state_machine.apply_transition(
                    delivery,
                    DeliveryStatus.DELIVERED,
                    now,
                    reason="Proof of delivery captured",
                    metadata={
                        "signer_name": signature.signer_name,
                        "signer_title": signature.signer_title,
                    },
                )
                await self.orders.set_order_status(order.id, OrderStatus.DELIVERED)

                if self.settings.release_resources_on_delivery:
                    await self.ledger.release(delivery.truck_id, delivery.driver_id)

                certificate_number = await self._certificate_number(qc_test.certificate_id)
                order_id = order.id
                report_filename = f"Traceability-Report-{order.order_number}.pdf"

                await self._commit("Failed to confirm delivery", delivery_id=str(delivery_id))
            except Exception:
                await self.session.rollback()
                raise

        logger.info("Delivery confirmed", delivery_id=str(delivery_id), order_id=str(order_id))

        invoice: Optional[Invoice] = None
        invoice_error: Optional[str] = None
        try:
            invoice = await self.invoices.issue_for_order(
                order_id,
                attachments={
                    "certificate_number": certificate_number,
                    "has_signature": True,
                    "traceability_report": report_filename,
                },
            )
        except SandtrackError as e:
            invoice_error = e.message
            logger.error(
                "Invoice issuance failed after delivery confirmation",
                delivery_id=str(delivery_id),
                order_id=str(order_id),
                error=e.message,
                error_type=type(e).__name__,
            )

        return ConfirmationResult(
            delivery=await self.get_delivery(delivery_id),
            invoice=invoice,
            invoice_error=invoice_error,
        )

    # Read side

    async def get_delivery(self, delivery_id: uuid.UUID) -> Delivery:
        """
        Get a delivery with its order, truck and driver loaded.

        Raises:
            EntityNotFoundError: If the delivery does not exist
        """
        return await self._load_delivery(delivery_id)

    async def list_deliveries(
        self,
        status: Optional[DeliveryStatus] = None,
        order_id: Optional[uuid.UUID] = None,
    ) -> Sequence[Delivery]:
        return await self.deliveries.list_deliveries(status=status, order_id=order_id)

    async def get_status_history(self, delivery_id: uuid.UUID) -> Sequence[DeliveryStatusHistory]:
        await self._load_delivery(delivery_id)
        return await self.deliveries.list_status_history(delivery_id)

    async def build_snapshot(self, delivery_id: uuid.UUID) -> DeliverySnapshot:
        delivery = await self._load_delivery(delivery_id)
        qc_test = await self.quality.find_passing_qc_test(delivery.order_id)
        certificate_number = (
            await self._certificate_number(qc_test.certificate_id) if qc_test else None
        )
        return DeliverySnapshot.from_delivery(delivery, self.settings, certificate_number)

    async def build_traceability_report(
        self,
        delivery_id: uuid.UUID,
        fmt: str = "pdf",
    ) -> TraceabilityReport:
        """
        Render the traceability report of a delivered delivery.

        Raises:
            EntityNotFoundError: If the delivery does not exist
            PreconditionFailedError: If the delivery is not delivered yet
        """
        snapshot = await self.build_snapshot(delivery_id)
        if not snapshot.is_delivered:
            raise PreconditionFailedError(
                f"Traceability reports are only available for delivered deliveries "
                f"(status: {snapshot.status.value})",
                delivery_id=str(delivery_id),
            )
        return self.report_builder.build(snapshot, fmt)

    # Helpers

    async def _load_delivery(self, delivery_id: uuid.UUID) -> Delivery:
        delivery = await self.deliveries.get_delivery(delivery_id, refresh=True)
        if delivery is None:
            raise EntityNotFoundError("Delivery", delivery_id)
        return delivery

    async def _certificate_number(self, certificate_id: Optional[uuid.UUID]) -> Optional[str]:
        if certificate_id is None:
            return None
        certificate = await self.quality.get_certificate(certificate_id)
        return certificate.certificate_number if certificate else None

    def _wait_time_minutes(self, delivery: Delivery, now) -> int:
        """Minutes from the recorded arrival to now, 0 when no arrival was recorded."""
        arrival = ensure_utc(delivery.actual_arrival)
        if arrival is None:
            return 0
        minutes = (ensure_utc(now) - arrival).total_seconds() / 60
        return max(0, math.floor(minutes + 0.5))

    async def _commit(self, message: str, **context: Any) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            raise translate_store_error(e, message, **context) from e
