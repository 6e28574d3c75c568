"""
QC test and certificate repository.

Certificates are created by the laboratory process. This repository answers
whether an order is certified and records which truck hauled the certified
lot.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.exceptions import EntityNotFoundError
from sandtrack.core.logging import get_logger
from sandtrack.database.errors import translate_store_error
from sandtrack.database.models.quality import Certificate, QCStatus, QCTest

logger = get_logger(__name__)


class QualityRepository:
    """Repository for QC tests and certificates."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_passing_qc_test(self, order_id: uuid.UUID) -> Optional[QCTest]:
        """
        Find the passing, certified QC test of an order.

        Returns:
            The most recent passing test referencing a certificate, or None
        """
        stmt = (
            select(QCTest)
            .where(
                QCTest.order_id == order_id,
                QCTest.status == QCStatus.PASSED,
                QCTest.certificate_id.is_not(None),
            )
            .order_by(QCTest.created_at.desc())
            .limit(1)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to look up QC certificate", order_id=str(order_id)
            ) from e
        return result.scalars().first()

    async def has_passing_certificate(self, order_id: uuid.UUID) -> bool:
        qc_test = await self.find_passing_qc_test(order_id)
        logger.debug(
            "Certificate check",
            order_id=str(order_id),
            has_certificate=qc_test is not None,
        )
        return qc_test is not None

    async def get_certificate(self, certificate_id: uuid.UUID) -> Optional[Certificate]:
        try:
            return await self.session.get(Certificate, certificate_id)
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to load certificate", certificate_id=str(certificate_id)
            ) from e

    async def stamp_certificate_truck(
        self,
        qc_test_id: uuid.UUID,
        truck_id: uuid.UUID,
    ) -> QCTest:
        """
        Record the dispatched truck on a QC test and its certificate.

        Raises:
            EntityNotFoundError: If the QC test does not exist
        """
        try:
            qc_test = await self.session.get(QCTest, qc_test_id)
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to load QC test", qc_test_id=str(qc_test_id)
            ) from e
        if qc_test is None:
            raise EntityNotFoundError("QC test", qc_test_id)

        qc_test.truck_id = truck_id
        if qc_test.certificate_id is not None:
            certificate = await self.get_certificate(qc_test.certificate_id)
            if certificate is not None:
                certificate.truck_id = truck_id

        logger.info(
            "Truck stamped on certificate",
            qc_test_id=str(qc_test_id),
            certificate_id=str(qc_test.certificate_id) if qc_test.certificate_id else None,
            truck_id=str(truck_id),
        )
        return qc_test
