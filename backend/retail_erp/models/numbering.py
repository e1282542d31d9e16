from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

DATE_FORMATS = ("YYYYMMDD", "YYYYMM", "YYYY")
RESET_PERIODS = ("DAILY", "MONTHLY", "YEARLY", "NEVER")


class NumberingRule(db.Model):
    """
    Per document type numbering configuration and counter.

    The counter lives here, in the database, so every server instance sees
    the same sequence. Read-increment-write happens under a row lock
    (see numbering_service.generate_next).
    """
    __tablename__ = "numbering_rules"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)

    prefix = db.Column(db.String(32), nullable=False, default="")
    date_format = db.Column(db.String(8), nullable=True)  # None, YYYYMMDD, YYYYMM, YYYY
    sequence_length = db.Column(db.Integer, nullable=False, default=4)
    reset_period = db.Column(db.String(16), nullable=True)  # DAILY, MONTHLY, YEARLY, NEVER

    current_sequence = db.Column(db.Integer, nullable=False, default=0)
    last_reset_at = db.Column(db.DateTime, nullable=True)  # Business-calendar wall time

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "prefix": self.prefix,
            "date_format": self.date_format,
            "sequence_length": self.sequence_length,
            "reset_period": self.reset_period,
            "current_sequence": self.current_sequence,
            "last_reset_at": self.last_reset_at.isoformat() if self.last_reset_at else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
