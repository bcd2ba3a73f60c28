from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Text, func, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Users(Base):
    __tablename__ = 'users'

    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    surname = Column(Text)
    email = Column(Text)
    phone = Column(Text)
    is_admin = Column(Integer, nullable=False, server_default=text('0'))
    created_at = Column(DateTime, server_default=func.current_timestamp())

    lesson_bookings = relationship('LessonBookings', back_populates='user')


class LessonAvailabilityRules(Base):
    __tablename__ = 'lesson_availability_rules'

    # JSON list of weekday numbers, 0 = Sunday
    days_of_week = Column(Text, nullable=False, server_default=text("'[]'"))
    time_start = Column(Text, nullable=False)
    time_end = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    location = Column(Text, nullable=False, server_default=text("'Soses'"))
    active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    valid_from = Column(Date)
    valid_to = Column(Date)
    created_at = Column(DateTime, server_default=func.current_timestamp())

    lesson_slots = relationship('LessonSlots', back_populates='rule')


class LessonAvailabilityOverrides(Base):
    __tablename__ = 'lesson_availability_overrides'

    date = Column(Date, nullable=False, index=True)
    kind = Column(Text, nullable=False, server_default=text("'closed'"))
    id = Column(Integer, primary_key=True)
    time_start = Column(Text)
    time_end = Column(Text)
    reason = Column(Text)
    # NULL location = applies to every location
    location = Column(Text)
    created_at = Column(DateTime, server_default=func.current_timestamp())


class LessonSlotBatches(Base):
    __tablename__ = 'lesson_slot_batches'

    valid_from = Column(Date, nullable=False)
    valid_to = Column(Date, nullable=False)
    days_of_week = Column(Text, nullable=False, server_default=text("'[]'"))
    base_time_start = Column(Text, nullable=False)
    location = Column(Text, nullable=False)
    timezone = Column(Text, nullable=False)
    template = Column(Text, nullable=False, server_default=text("'{}'"))
    id = Column(Integer, primary_key=True)
    title = Column(Text)
    options = Column(Text)
    created_at = Column(DateTime, server_default=func.current_timestamp())

    lesson_slots = relationship('LessonSlots', back_populates='batch')


class LessonSlots(Base):
    __tablename__ = 'lesson_slots'

    # Naive UTC, half-open [start_at, end_at)
    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)
    max_capacity = Column(Integer, nullable=False, server_default=text('4'))
    location = Column(Text, nullable=False, server_default=text("'Soses'"), index=True)
    status = Column(Text, nullable=False, server_default=text("'open'"))
    joinable = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    # Non-owning back-reference, no FK so the booking keeps its own lifecycle
    locked_by_booking_id = Column(Integer)
    created_from_rule_id = Column(ForeignKey('lesson_availability_rules.id', ondelete='SET NULL'))
    created_from_batch_id = Column(ForeignKey('lesson_slot_batches.id', ondelete='SET NULL'))
    created_at = Column(DateTime, server_default=func.current_timestamp())

    rule = relationship('LessonAvailabilityRules', back_populates='lesson_slots')
    batch = relationship('LessonSlotBatches', back_populates='lesson_slots')
    lesson_bookings = relationship('LessonBookings', back_populates='slot')


class LessonBookings(Base):
    __tablename__ = 'lesson_bookings'

    slot_id = Column(ForeignKey('lesson_slots.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(ForeignKey('users.id'), nullable=False)
    group_size = Column(Integer, nullable=False, server_default=text('1'))
    allow_fill = Column(Integer, nullable=False, server_default=text('1'))
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    id = Column(Integer, primary_key=True)
    observations = Column(Text)
    created_at = Column(DateTime, server_default=func.current_timestamp())

    slot = relationship('LessonSlots', back_populates='lesson_bookings')
    user = relationship('Users', back_populates='lesson_bookings')
    participants = relationship(
        'LessonBookingParticipants',
        back_populates='booking',
        cascade='all, delete-orphan',
    )


class LessonBookingParticipants(Base):
    __tablename__ = 'lesson_booking_participants'

    booking_id = Column(ForeignKey('lesson_bookings.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    is_primary = Column(Integer, nullable=False, server_default=text('0'))
    id = Column(Integer, primary_key=True)

    booking = relationship('LessonBookings', back_populates='participants')
