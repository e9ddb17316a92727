#!/usr/bin/env python3
"""
Database Seed Script
Populate a demo family, group, children and vehicles

Prints a JWT for the demo parent so the API and the SSE stream can be tried
right away (cookie `carpoolauth` or `Authorization: Bearer <token>`).
"""

import asyncio

from sqlalchemy import func, select

from src.platform.database.orm_db_setting import dispose_engine, get_session_maker
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.domain.entity.vehicle_entity import Vehicle
from src.service.carpool.driven_adapter.model import (
    ChildModel,
    FamilyMemberModel,
    FamilyModel,
    GroupChildMemberModel,
    GroupModel,
    UserModel,
    VehicleModel,
)
from src.service.carpool.driven_adapter.model.user_model import new_id
from src.service.carpool.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


DEMO_TIMEZONE = 'Europe/Paris'
CHILDREN = [('Emma', 8), ('Lucas', 10), ('Noah', 6)]
VEHICLES = [('Family Van', 6), ('City Car', 3)]


async def _seed() -> User:
    async with get_session_maker()() as session:
        family = FamilyModel(id=new_id(), name='Martin Family')
        parent = UserModel(
            id=new_id(), email='parent@carpool.test', name='Alex Martin', timezone=DEMO_TIMEZONE
        )
        group = GroupModel(
            id=new_id(), name='School Run', family_id=family.id, timezone=DEMO_TIMEZONE
        )
        session.add_all([family, parent])
        await session.flush()
        session.add_all(
            [
                FamilyMemberModel(id=new_id(), family_id=family.id, user_id=parent.id, role='admin'),
                group,
            ]
        )
        await session.flush()

        for name, age in CHILDREN:
            child = ChildModel(id=new_id(), name=name, age=age, family_id=family.id)
            session.add(child)
            await session.flush()
            session.add(GroupChildMemberModel(child_id=child.id, group_id=group.id))
            print(f'   ✅ Child {name}: {child.id}')

        for name, capacity in VEHICLES:
            vehicle = Vehicle.create(name=name, capacity=capacity, family_id=family.id)
            session.add(
                VehicleModel(
                    id=vehicle.id,
                    name=vehicle.name,
                    capacity=vehicle.capacity,
                    family_id=vehicle.family_id,
                )
            )
            print(f'   ✅ Vehicle {name} ({capacity} seats): {vehicle.id}')

        await session.commit()
        print(f'   ✅ Group {group.name}: {group.id}')
        return User(id=parent.id, email=parent.email, name=parent.name, timezone=parent.timezone)


async def _verify() -> None:
    async with get_session_maker()() as session:
        for model in (UserModel, ChildModel, VehicleModel, GroupModel):
            count = (await session.execute(select(func.count()).select_from(model))).scalar_one()
            print(f'   {model.__tablename__} count: {count}')


async def main() -> None:
    print('🌱 Starting data seeding...')
    print('=' * 50)

    try:
        parent = await _seed()
        print()
        print('🔍 Verifying seeded data...')
        await _verify()
    except Exception as e:
        print(f'❌ Seeding failed: {e}')
        raise SystemExit(1) from e
    finally:
        await dispose_engine()

    print('=' * 50)
    print('🌱 Data seeding completed!')
    print(f'📋 {parent.email} token: {JwtAuth().create_jwt_token(parent)}')


if __name__ == '__main__':
    asyncio.run(main())
