"""
Preferences repository - Data access layer for the Preference model.
Handles all database queries related to persisted scalar flags.
"""
from typing import Optional
from sqlalchemy.orm import Session

from crm_store.models import Preference


class PreferencesRepository:
    """Repository for Preference data access"""

    @staticmethod
    def get(db: Session, key: str) -> Optional[str]:
        """
        Get the stored value for a key.

        Returns:
            The string value, or None if the key was never written
        """
        preference = db.query(Preference).filter(Preference.key == key).first()
        return preference.value if preference else None

    @staticmethod
    def set(db: Session, key: str, value: str) -> Preference:
        """
        Insert or update a key.

        Args:
            db: Database session
            key: Preference key
            value: String value to store

        Returns:
            Updated preference
        """
        preference = db.query(Preference).filter(Preference.key == key).first()
        if not preference:
            preference = Preference(key=key)
            db.add(preference)
        preference.value = value
        db.commit()
        db.refresh(preference)
        return preference
