"""
初始化数据脚本
创建：房型、房间、员工账号、示例客人

默认账号（密码均为 123456）：
  admin        管理员
  front1       前台
  cleaner1     客房清洁
  guest@example.com  示例客人
"""
import json
from decimal import Decimal
from keycard.database import SessionLocal, init_db
from keycard.models.ontology import RoomType, Room, RoomStatus, User, UserRole
from keycard.security.auth import get_password_hash

DEFAULT_PASSWORD = "123456"


def init_room_types(db):
    """初始化房型"""
    room_type_defs = [
        {
            'name': 'Standard Twin',
            'description': '标准双床房，独立卫浴、空调、免费WiFi',
            'base_rate': Decimal('100.00'),
            'capacity': 2,
            'amenities': ['WiFi', 'Air Conditioning', 'TV', 'Hair Dryer'],
        },
        {
            'name': 'Queen',
            'description': '大床房，1.8米大床',
            'base_rate': Decimal('130.00'),
            'capacity': 2,
            'amenities': ['WiFi', 'Air Conditioning', 'TV', 'Mini Fridge'],
        },
        {
            'name': 'Deluxe Suite',
            'description': '豪华套房，带沙发休息区和高层景观',
            'base_rate': Decimal('220.00'),
            'capacity': 4,
            'amenities': ['WiFi', 'Air Conditioning', 'TV', 'Mini Fridge', 'Safe', 'Bathrobe'],
        },
    ]

    created = []
    for rt_data in room_type_defs:
        if not db.query(RoomType).filter(RoomType.name == rt_data['name']).first():
            db.add(RoomType(**{**rt_data, 'amenities': json.dumps(rt_data['amenities'])}))
            created.append(rt_data['name'])

    db.commit()
    print(f"房型初始化完成: {len(created)} 个新建")
    return {rt.name: rt for rt in db.query(RoomType).all()}


def init_rooms(db, room_types_map):
    """初始化房间：每层 4 间，2~4 层"""
    floors_config = {
        2: 'Standard Twin',
        3: 'Queen',
        4: 'Deluxe Suite',
    }

    created = 0
    for floor, type_name in floors_config.items():
        for index in range(1, 5):
            room_number = f"{floor}{index:02d}"
            if db.query(Room).filter(Room.room_number == room_number).first():
                continue
            db.add(Room(
                room_number=room_number,
                floor=floor,
                room_type_id=room_types_map[type_name].id,
                status=RoomStatus.VACANT
            ))
            created += 1

    db.commit()
    print(f"房间初始化完成: {created} 间新建")


def init_users(db):
    """初始化员工和示例客人"""
    user_defs = [
        ('admin', 'admin@keycard.local', 'Ada', 'Admin', UserRole.ADMIN),
        ('front1', 'front1@keycard.local', 'Frank', 'Desk', UserRole.FRONT_DESK),
        ('cleaner1', 'cleaner1@keycard.local', 'Hana', 'Keeping', UserRole.HOUSEKEEPING),
        ('guest@example.com', 'guest@example.com', 'Grace', 'Guest', UserRole.GUEST),
    ]

    created = []
    for username, email, first_name, last_name, role in user_defs:
        if db.query(User).filter(User.username == username).first():
            continue
        db.add(User(
            username=username,
            email=email,
            password_hash=get_password_hash(DEFAULT_PASSWORD),
            first_name=first_name,
            last_name=last_name,
            full_name=f"{first_name} {last_name}",
            role=role,
            is_active=True
        ))
        created.append(username)

    db.commit()
    print(f"账号初始化完成: {', '.join(created) or '无新建'}")


def main():
    """主函数"""
    print("=" * 50)
    print("KeyCard 初始化数据")
    print("=" * 50)

    init_db()
    print("数据库表创建完成")

    db = SessionLocal()
    try:
        room_types_map = init_room_types(db)
        init_rooms(db, room_types_map)
        init_users(db)
        print("初始化完成")
    finally:
        db.close()


if __name__ == '__main__':
    main()
