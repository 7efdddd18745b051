"""
Alert Repository - data access layer for Alert model.
"""

from typing import Optional, List
from sqlmodel import Session, select

from db_engine import get_engine
from models import Alert


class AlertRepository:
    """Repository for Alert CRUD operations."""

    @staticmethod
    def add(
        user_id: str,
        asset_symbol: str,
        alert_type: str,
        condition: str,
        value: float,
        session: Optional[Session] = None
    ) -> Alert:
        """
        Add a new active alert.

        Args:
            user_id: Owner of the alert
            asset_symbol: Quote-format symbol of an existing asset
            alert_type: "price" or "percentage"
            condition: "above" or "below"
            value: Threshold value
            session: Optional existing session for transaction reuse

        Returns:
            Created Alert object
        """
        def _create_alert(sess: Session) -> Alert:
            alert = Alert(
                user_id=user_id,
                asset_symbol=asset_symbol,
                alert_type=alert_type,
                condition=condition,
                value=value,
                is_active=True
            )
            sess.add(alert)
            sess.commit()
            sess.refresh(alert)
            return alert

        if session is not None:
            return _create_alert(session)
        else:
            with Session(get_engine()) as session:
                return _create_alert(session)

    @staticmethod
    def get_active_for_user(user_id: str, session: Optional[Session] = None) -> List[Alert]:
        """Retrieve a user's active alerts, oldest first."""
        def _get_active(sess: Session) -> List[Alert]:
            statement = select(Alert).where(
                Alert.user_id == user_id,
                Alert.is_active == True  # noqa: E712
            ).order_by(Alert.created_at)
            return list(sess.exec(statement).all())

        if session is not None:
            return _get_active(session)
        else:
            with Session(get_engine()) as session:
                return _get_active(session)

    @staticmethod
    def deactivate(alert_id: int, user_id: str, session: Optional[Session] = None) -> Optional[Alert]:
        """
        Mark one of the user's alerts inactive.

        Returns:
            Updated Alert object or None if the user has no such alert
        """
        def _deactivate(sess: Session) -> Optional[Alert]:
            alert = sess.get(Alert, alert_id)
            if alert is None or alert.user_id != user_id:
                return None
            alert.is_active = False
            sess.add(alert)
            sess.commit()
            sess.refresh(alert)
            return alert

        if session is not None:
            return _deactivate(session)
        else:
            with Session(get_engine()) as session:
                return _deactivate(session)

    @staticmethod
    def delete_for_user(
        user_id: str,
        alert_id: Optional[int] = None,
        asset_symbol: Optional[str] = None,
        session: Optional[Session] = None
    ) -> int:
        """
        Delete a user's alerts by id, or all of them on one asset.

        Returns:
            Number of alerts deleted
        """
        if alert_id is None and asset_symbol is None:
            raise ValueError("alert_id or asset_symbol is required")

        def _delete(sess: Session) -> int:
            statement = select(Alert).where(Alert.user_id == user_id)
            if alert_id is not None:
                statement = statement.where(Alert.id == alert_id)
            else:
                statement = statement.where(Alert.asset_symbol == asset_symbol)
            alerts = sess.exec(statement).all()
            try:
                for alert in alerts:
                    sess.delete(alert)
                sess.commit()
            except Exception as e:
                sess.rollback()
                raise e
            return len(alerts)

        if session is not None:
            return _delete(session)
        else:
            with Session(get_engine()) as session:
                return _delete(session)
