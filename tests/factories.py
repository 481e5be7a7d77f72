"""Row builders for tests. Each helper commits and returns the row."""

import uuid
from datetime import datetime
from decimal import Decimal

from app.models.experience import Experience, ExperienceStatus
from app.models.group import Group, GroupMember, GroupPrivacy, GroupStatus, MemberRole, MemberState
from app.models.property import CancellationPolicy, Property, PropertyStatus
from app.models.user import User, UserRole


def make_user(db, first_name="Test", last_name="User", role=UserRole.USER.value, **kwargs):
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=kwargs.pop("email", f"{uuid.uuid4().hex[:10]}@example.com"),
        role=role,
        **kwargs
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_property(db, host, nightly_price=100, policy=CancellationPolicy.FLEXIBLE.value, **kwargs):
    prop = Property(
        host_id=host.id,
        title=kwargs.pop("title", "Sea View Apartment"),
        city=kwargs.pop("city", "Nouakchott"),
        nightly_price=Decimal(str(nightly_price)),
        cancellation_policy=policy,
        status=kwargs.pop("status", PropertyStatus.APPROVED.value),
        is_active=True,
        **kwargs
    )
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


def make_experience(db, host, group_size=4, price_per_person=50, **kwargs):
    experience = Experience(
        host_id=host.id,
        title=kwargs.pop("title", "Desert Camp Night"),
        city=kwargs.pop("city", "Atar"),
        group_size=group_size,
        price_per_person=Decimal(str(price_per_person)),
        status=ExperienceStatus.LIVE.value,
        **kwargs
    )
    db.add(experience)
    db.commit()
    db.refresh(experience)
    return experience


def make_group(db, owner, experience, members=(), privacy=GroupPrivacy.PUBLIC.value, status=GroupStatus.PENDING.value):
    """Group owned by owner with each of members joined"""
    group = Group(
        experience_id=experience.id if experience is not None else None,
        owner_id=owner.id,
        name="Weekend crew",
        privacy=privacy,
        status=status,
    )
    db.add(group)
    db.flush()

    now = datetime.utcnow()
    db.add(GroupMember(
        group_id=group.id,
        user_id=owner.id,
        role=MemberRole.OWNER.value,
        state=MemberState.JOINED.value,
        joined_at=now,
    ))
    for member in members:
        db.add(GroupMember(
            group_id=group.id,
            user_id=member.id,
            role=MemberRole.MEMBER.value,
            state=MemberState.JOINED.value,
            joined_at=now,
        ))
    db.commit()
    db.refresh(group)
    return group
