"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import get_settings
from app.core.database import SessionLocal, close_engine
from app.core.enums import DepositTypeEnum, RoleEnum
from app.core.security import create_access_token
from app.modules.identity.models import Role, User
from app.modules.identity.repository import IdentityRepository
from app.modules.identity.service import IdentityService
from app.modules.policy.snapshot import create_policy_snapshot
from app.modules.services.models import Service

DEMO_ADMIN_EMAIL = "demo-admin@depositguard.dev"
DEMO_PROVIDER_EMAIL = "demo-provider@depositguard.dev"
DEMO_CUSTOMER_EMAIL = "demo-customer@depositguard.dev"

DEMO_SERVICE_NAME = "Demo end-of-lease clean"
DEMO_SERVICE_POLICY = {
    "description": "Three-bedroom bond clean with oven and carpets.",
    "duration_minutes": 180,
    "deposit_amount": 10000,
    "deposit_type": DepositTypeEnum.FIXED,
    "full_price": 45000,
    "cancellation_window_hours": 24,
    "minimum_cancellation_hours": 2,
    "late_cancellation_fee": 3000,
    "no_show_fee": 5000,
    "allow_partial_refunds": True,
    "auto_refund_on_cancel": True,
    "flex_pass_enabled": True,
    "flex_pass_price": 999,
    "flex_pass_revenue_share_percent": 60,
}


@dataclass(slots=True)
class SeedStats:
    users_created: int = 0
    users_updated: int = 0
    service_created: bool = False
    service_id: str | None = None
    tokens: dict[str, str] | None = None


async def _ensure_user(
    session: AsyncSession,
    *,
    email: str,
    name: str,
    role_name: RoleEnum,
    timezone: str,
) -> tuple[User, bool]:
    role = await session.scalar(select(Role).where(Role.name == role_name))
    if role is None:
        raise RuntimeError(f"Role {role_name} was not found after ensure_default_roles")

    user = await session.scalar(
        select(User).options(selectinload(User.role)).where(User.email == email),
    )
    created = False
    if user is None:
        user = User(email=email, name=name, timezone=timezone, is_active=True, role_id=role.id)
        session.add(user)
        created = True
    else:
        if user.role_id != role.id:
            user.role_id = role.id
        if user.timezone != timezone:
            user.timezone = timezone
        if not user.is_active:
            user.is_active = True

    await session.flush()
    await session.refresh(user, attribute_names=["role"])
    return user, created


async def _ensure_demo_service(session: AsyncSession, provider: User) -> tuple[Service, bool]:
    service = await session.scalar(
        select(Service).where(Service.provider_id == provider.id, Service.name == DEMO_SERVICE_NAME),
    )
    created = service is None
    if service is None:
        service = Service(provider_id=provider.id, name=DEMO_SERVICE_NAME, **DEMO_SERVICE_POLICY)
        session.add(service)
    else:
        for key, value in DEMO_SERVICE_POLICY.items():
            setattr(service, key, value)
        service.is_active = True

    await session.flush()
    create_policy_snapshot(service)
    return service, created


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with SessionLocal() as session:
        try:
            await IdentityService(IdentityRepository(session)).ensure_default_roles()

            users: dict[str, User] = {}
            for label, email, role_name, timezone in (
                ("admin", DEMO_ADMIN_EMAIL, RoleEnum.ADMIN, "UTC"),
                ("provider", DEMO_PROVIDER_EMAIL, RoleEnum.PROVIDER, "Australia/Sydney"),
                ("customer", DEMO_CUSTOMER_EMAIL, RoleEnum.CUSTOMER, "Australia/Sydney"),
            ):
                user, created = await _ensure_user(
                    session,
                    email=email,
                    name=f"Demo {label}",
                    role_name=role_name,
                    timezone=timezone,
                )
                users[label] = user
                stats.users_created += int(created)
            stats.users_updated = len(users) - stats.users_created

            service, stats.service_created = await _ensure_demo_service(session, users["provider"])
            stats.service_id = str(service.id)

            await session.commit()
        except Exception:
            await session.rollback()
            raise

    stats.tokens = {label: create_access_token(str(user.id)) for label, user in users.items()}
    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed idempotent demo data for DepositGuard (users and one priced service).",
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Users created: {stats.users_created}")
    print(f"- Users updated: {stats.users_updated}")
    print(f"- Service created: {stats.service_created}")
    print(f"- Service id: {stats.service_id}")
    print("")
    print("Demo bearer tokens (non-production only, valid 12h):")
    for label, token in (stats.tokens or {}).items():
        print(f"- {label}: {token}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
