# orderflow/services/auth_services/user_service.py
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from fastapi import HTTPException

from orderflow.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from orderflow.core.security import hash_password
from orderflow.models.user_models import Client, Manufacturer, User
from orderflow.schemas.user_schemas import UserCreate, UserDelete, UserUpdate
from orderflow.utils.audit_helpers import diff_fields, apply_updates, field_change, log_audit
from orderflow.utils.check_roles import CLIENT_ROLES, MANUFACTURER_ROLES

logger = logging.getLogger(__name__)


def user_type_for(role: str, user_type: Optional[str]) -> str:
    if user_type:
        return user_type
    if role in MANUFACTURER_ROLES:
        return "manufacturer"
    if role in CLIENT_ROLES:
        return "client"
    return "admin"


async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def _linked_party(db: AsyncSession, user: User, user_type: str):
    if user_type == "manufacturer" and user.manufacturer_id:
        return await db.get(Manufacturer, user.manufacturer_id)
    if user_type == "client" and user.client_id:
        return await db.get(Client, user.client_id)
    return None


# ---------------------------
# CREATE USER
# ---------------------------
async def create_user(db: AsyncSession, user_data: UserCreate, current_user) -> User:
    """
    Create a user and, for manufacturer and client accounts, the party row it
    acts for, in a single transaction.
    """
    try:
        email = user_data.email.lower()
        if await _email_taken(db, email):
            raise ConflictError(f"A user with email {email} already exists")

        role = user_data.role.value
        user_type = user_type_for(role, user_data.userType)
        new_user = User(
            email=email,
            name=user_data.name.strip(),
            password_hash=hash_password(user_data.password),
            role=role,
            created_by=current_user.id,
        )

        if user_type == "manufacturer":
            if user_data.manufacturer_id is not None:
                if not await db.get(Manufacturer, user_data.manufacturer_id):
                    raise NotFoundError("Manufacturer", user_data.manufacturer_id)
                new_user.manufacturer_id = user_data.manufacturer_id
            else:
                manufacturer = Manufacturer(name=new_user.name, email=email)
                db.add(manufacturer)
                await db.flush()
                new_user.manufacturer_id = manufacturer.id
        elif user_type == "client":
            if user_data.client_id is not None:
                if not await db.get(Client, user_data.client_id):
                    raise NotFoundError("Client", user_data.client_id)
                new_user.client_id = user_data.client_id
            else:
                client = Client(name=new_user.name, email=email)
                db.add(client)
                await db.flush()
                new_user.client_id = client.id

        db.add(new_user)
        await db.flush()  # ensures new_user.id is available

        party = await _linked_party(db, new_user, user_type)
        if party is not None and party.user_id is None:
            party.user_id = new_user.id

        await log_audit(
            db, current_user, "user_created", "user", new_user.id,
            new_value=email, changes=[field_change("role", None, role)],
        )
        # Commit once: user, party and audit entry are persisted atomically
        await db.commit()
        logger.info("%s created %s user %s", current_user.email, role, email)
        return new_user

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error creating user: {e}")


# ---------------------------
# LIST ALL USERS
# ---------------------------
async def list_users(db: AsyncSession, role: Optional[str] = None, include_inactive: bool = True):
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if not include_inactive:
        query = query.where(User.is_active == True)
    result = await db.execute(query.order_by(User.id))
    return result.scalars().all()


# ---------------------------
# GET USER BY ID
# ---------------------------
async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


# ---------------------------
# UPDATE USER
# ---------------------------
async def update_user(db: AsyncSession, data: UserUpdate, current_user) -> User:
    """
    Update a user and keep the linked manufacturer or client row's name and
    email in step.
    """
    try:
        target_user = await get_user_by_id(db, data.userId)
        fields = data.updates.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationFailed("No fields to update", field="updates")

        password = fields.pop("password", None)
        if "email" in fields:
            fields["email"] = fields["email"].lower()
            if await _email_taken(db, fields["email"], exclude_id=target_user.id):
                raise ConflictError(f"A user with email {fields['email']} already exists")
        if "role" in fields and fields["role"] is not None:
            fields["role"] = fields["role"].value
        if target_user.id == current_user.id and (fields.get("is_active") is False or "role" in fields):
            raise ValidationFailed("You cannot change your own role or deactivate yourself")

        changes = diff_fields(target_user, fields)
        apply_updates(target_user, fields)
        if password:
            target_user.password_hash = hash_password(password)
            target_user.token_version += 1
            changes.append(field_change("password", None, "changed"))
        if "role" in fields or fields.get("is_active") is False:
            target_user.token_version += 1

        party = await _linked_party(db, target_user, user_type_for(target_user.role, data.userType))
        if party is not None:
            if "name" in fields:
                party.name = fields["name"]
            if "email" in fields:
                party.email = fields["email"]

        if changes:
            await log_audit(db, current_user, "user_updated", "user", target_user.id, changes=changes)
        await db.commit()
        return target_user

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating user: {e}")


# ---------------------------
# DELETE USER (deactivate)
# ---------------------------
async def delete_user(db: AsyncSession, data: UserDelete, current_user) -> User:
    """
    Deactivates the account and invalidates its tokens. The row stays so that
    audit entries and order ownership keep resolving.
    """
    try:
        target_user = await get_user_by_id(db, data.userId)
        if target_user.id == current_user.id:
            raise ValidationFailed("You cannot delete your own account")
        if target_user.is_active:
            target_user.is_active = False
            target_user.token_version += 1
            await log_audit(
                db, current_user, "user_deactivated", "user", target_user.id,
                old_value="active", new_value="inactive",
                changes=[field_change("is_active", True, False)],
            )
            await db.commit()
            logger.info("%s deactivated user %s", current_user.email, target_user.email)
        return target_user

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error deleting user: {e}")
