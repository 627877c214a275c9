# storefront/repos/payment_repo.py
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload

from storefront.data.models.payment import PaymentModel


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_payment(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        return payment

    def get_payment(self, payment_id: int) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel)
            .where(PaymentModel.id == payment_id)
            .options(joinedload(PaymentModel.order))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_by_order(self, order_id: int) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel).where(PaymentModel.order_id == order_id)
        ).scalar_one_or_none()

    def list_payments(self, order_id: int | None = None, user_id: int | None = None) -> list[PaymentModel]:
        stmt = (
            select(PaymentModel)
            .options(joinedload(PaymentModel.order))
            .order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc())
        )
        if order_id is not None:
            stmt = stmt.where(PaymentModel.order_id == order_id)
        if user_id is not None:
            stmt = stmt.where(PaymentModel.user_id == user_id)
        return list(self.db.execute(stmt).scalars().all())

    def list_stuck(self, older_than: datetime) -> list[PaymentModel]:
        return list(
            self.db.execute(
                select(PaymentModel).where(
                    PaymentModel.status == "processing",
                    PaymentModel.updated_at < older_than,
                )
            ).scalars().all()
        )

    def transition(self, payment_id: int, from_status: str, new_data: dict) -> int:
        """
        Conditional status change: UPDATE ... WHERE id = :id AND status = :from.
        0 rows means somebody else moved the payment first.
        """
        result = self.db.execute(
            update(PaymentModel)
            .where(PaymentModel.id == payment_id, PaymentModel.status == from_status)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
