from sqlalchemy.orm import Session
import logging

from ..core.config import settings
from ..models.setting import HospitalSettings

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1

class SettingsService:
    def __init__(self, db: Session):
        self.db = db

    def get_settings(self) -> HospitalSettings:
        """Return the settings row, creating it with defaults on first use."""
        row = self.db.query(HospitalSettings).filter(
            HospitalSettings.id == SETTINGS_ROW_ID
        ).first()

        if not row:
            row = HospitalSettings(
                id=SETTINGS_ROW_ID,
                base_appointment_fee=settings.DEFAULT_BASE_APPOINTMENT_FEE
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)

        return row

    def base_appointment_fee(self) -> int:
        return self.get_settings().base_appointment_fee

    def update_base_appointment_fee(self, fee: int) -> HospitalSettings:
        """Set the base fee used for new bookings. Existing bookings keep theirs."""
        row = self.get_settings()
        old_fee = row.base_appointment_fee
        row.base_appointment_fee = fee

        self.db.commit()
        self.db.refresh(row)

        logger.info(f"Base appointment fee changed from {old_fee} to {fee}")
        return row
