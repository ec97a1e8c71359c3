from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# =============================================================================
# Variables
# =============================================================================


class Variable(Base):
    """A tracked quantity (weight, sleep score, supplement dose...)."""

    __tablename__ = "variables"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    label = Column(String(255), nullable=False)
    unit = Column(String(50))
    created_at = Column(DateTime, default=datetime.utcnow)

    logs = relationship("VariableLog", back_populates="variable")


class VariableLog(Base):
    """A single recorded value for a variable."""

    __tablename__ = "variable_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    variable_id = Column(Integer, ForeignKey("variables.id"), nullable=False, index=True)
    display_value = Column(String(255))
    display_unit = Column(String(50))
    source = Column(String(20), default="manual")  # manual, routine, auto
    logged_at = Column(DateTime, nullable=False, index=True)
    notes = Column(Text)
    context = Column(JSON)  # {"routine_id": 1, "routine_variable_id": 4}
    created_at = Column(DateTime, default=datetime.utcnow)

    variable = relationship("Variable", back_populates="logs")


# =============================================================================
# Routines
# =============================================================================


class Routine(Base):
    """A named daily routine owned by a user."""

    __tablename__ = "routines"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    routine_name = Column(String(255), nullable=False)
    notes = Column(Text)
    is_active = Column(Boolean, default=True)
    weekdays = Column(JSON, default=list)  # ISO weekdays, 1=Monday .. 7=Sunday
    last_auto_logged = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    variables = relationship(
        "RoutineVariable",
        back_populates="routine",
        cascade="all, delete-orphan",
        order_by="RoutineVariable.display_order",
    )


class RoutineVariable(Base):
    """Binds a variable to a routine with the times it should be logged."""

    __tablename__ = "routine_variables"

    id = Column(Integer, primary_key=True, index=True)
    routine_id = Column(Integer, ForeignKey("routines.id", ondelete="CASCADE"), nullable=False)
    variable_id = Column(Integer, ForeignKey("variables.id"), nullable=False)
    default_value = Column(String(255))
    default_unit = Column(String(50))
    weekdays = Column(JSON, default=list)
    times = Column(JSON, default=list)  # [{"time": "07:30", "name": "Morning"}]
    display_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    routine = relationship("Routine", back_populates="variables")
    variable = relationship("Variable")


class RoutineLogHistory(Base):
    """Record of auto-logs created from routines, one per binding/date/slot."""

    __tablename__ = "routine_log_history"
    __table_args__ = (
        UniqueConstraint(
            "routine_variable_id", "log_date", "time_of_day", name="uq_routine_log_history_slot"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    routine_id = Column(Integer, ForeignKey("routines.id", ondelete="CASCADE"), nullable=False)
    routine_variable_id = Column(
        Integer, ForeignKey("routine_variables.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(String(64), nullable=False, index=True)
    variable_id = Column(Integer, ForeignKey("variables.id"), nullable=False)
    log_date = Column(Date, nullable=False, index=True)
    time_of_day = Column(String(8), nullable=False)
    auto_logged_value = Column(String(255))
    auto_logged_unit = Column(String(50))
    created_at = Column(DateTime, default=datetime.utcnow)
