"""
演示数据初始化脚本
- 清空业务数据（保留表结构）
- 创建演示用户
- 通过业务服务创建分类（含规格定义）、商品和库存流水
"""

import asyncio
import sys
import os

# 添加项目路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.context import Operator
from voltstock.db.init_db import ensure_tables_exist
from voltstock.db.session import SessionLocal
from voltstock.models import AuditLog, StockTransaction, Product, Category, User, UserRole
from voltstock.models.stock_transaction import TransactionType
from voltstock.services import category_service, product_catalog, stock_ledger


async def clear_all_data(db: AsyncSession):
    """清除所有业务数据（保留表结构）"""
    print("🗑️  清除所有数据...")

    # 按照外键依赖顺序删除
    for model in (AuditLog, StockTransaction, Product, Category, User):
        await db.execute(delete(model))
        print(f"   ✓ 清除 {model.__tablename__}")

    await db.commit()
    print("   完成！\n")


async def create_users(db: AsyncSession) -> User:
    """创建演示用户，返回管理员"""
    print("👤 创建用户...")
    users = [
        User(name="Admin", email="admin@example.com", role=UserRole.ADMIN),
        User(name="Store Manager", email="manager@example.com", role=UserRole.MANAGER),
        User(name="Counter Staff", email="staff@example.com", role=UserRole.STAFF),
    ]
    db.add_all(users)
    await db.commit()
    for user in users:
        print(f"   ✓ {user.role}: {user.name} <{user.email}>")
    return users[0]


async def create_categories(db: AsyncSession, operator: Operator) -> dict:
    """创建分类树和各分类的规格定义"""
    print("📁 创建分类...")

    wires = await category_service.save_category(db, {
        "name": "Wires & Cables",
        "specifications": [
            {"name": "Core Material", "type": "DROPDOWN", "options": "Copper, Aluminium"},
            {"name": "Cross Section (sq mm)", "type": "NUMBER"},
        ],
    }, operator)
    house_wire = await category_service.save_category(db, {
        "name": "House Wire",
        "parent_id": wires.id,
        "specifications": [
            {"name": "Color", "type": "DROPDOWN", "options": "Red, Black, Blue, Yellow, Green"},
            {"name": "Coil Length (m)", "type": "NUMBER"},
            {"name": "Brand", "type": "TEXT"},
        ],
    }, operator)
    switches = await category_service.save_category(db, {
        "name": "Switches & Sockets",
        "specifications": [
            {"name": "Rating (A)", "type": "DROPDOWN", "options": "6, 10, 16, 20"},
            {"name": "Modules", "type": "NUMBER"},
            {"name": "Series", "type": "TEXT", "required": False},
        ],
    }, operator)
    lighting = await category_service.save_category(db, {
        "name": "Lighting",
        "specifications": [
            {"name": "Wattage", "type": "NUMBER"},
            {"name": "Color Temperature", "type": "DROPDOWN", "options": "Warm White, Neutral White, Cool Daylight"},
        ],
    }, operator)

    for cat in (wires, house_wire, switches, lighting):
        print(f"   ✓ {cat.name}（{len(cat.specifications)} 项规格）")
    return {"house_wire": house_wire, "switches": switches, "lighting": lighting}


def _spec_id(category: Category, name: str) -> str:
    return next(s["id"] for s in category.specifications if s["name"] == name)


async def create_products(db: AsyncSession, operator: Operator, categories: dict) -> list:
    """创建商品"""
    print("📦 创建商品...")
    house_wire = categories["house_wire"]
    switches = categories["switches"]
    lighting = categories["lighting"]

    product_data = [
        {
            "sku": "HW-RED-15", "name": "1.5 sq mm FR House Wire (Red)", "category_id": house_wire.id,
            "price": "1450.00", "min_stock": 10, "unit": "coil",
            "specifications": {
                _spec_id(house_wire, "Color"): "Red",
                _spec_id(house_wire, "Coil Length (m)"): "90",
                _spec_id(house_wire, "Brand"): "Polycab",
            },
        },
        {
            "sku": "HW-BLK-25", "name": "2.5 sq mm FR House Wire (Black)", "category_id": house_wire.id,
            "price": "2390.00", "min_stock": 8, "unit": "coil",
            "specifications": {
                _spec_id(house_wire, "Color"): "Black",
                _spec_id(house_wire, "Coil Length (m)"): "90",
                _spec_id(house_wire, "Brand"): "Havells",
            },
        },
        {
            "sku": "SW-6A-1M", "name": "6A One-Way Switch", "category_id": switches.id,
            "price": "45.00", "min_stock": 50, "unit": "pcs",
            "specifications": {
                _spec_id(switches, "Rating (A)"): "6",
                _spec_id(switches, "Modules"): "1",
            },
        },
        {
            "sku": "LED-9W-CD", "name": "9W LED Bulb B22", "category_id": lighting.id,
            "price": "99.00", "min_stock": 40, "unit": "pcs",
            "specifications": {
                _spec_id(lighting, "Wattage"): "9",
                _spec_id(lighting, "Color Temperature"): "Cool Daylight",
            },
        },
    ]

    products = []
    for data in product_data:
        result = await product_catalog.save_product(db, data, operator)
        products.append(result.product)
        print(f"   ✓ {result.product.sku}: {result.product.name}")
    return products


async def record_stock(db: AsyncSession, operator: Operator, products: list):
    """登记演示库存流水"""
    print("🚚 登记库存流水...")
    movements = [
        (products[0], TransactionType.STOCK_IN, 25, "Opening stock"),
        (products[1], TransactionType.STOCK_IN, 6, "Opening stock"),
        (products[2], TransactionType.STOCK_IN, 200, "Opening stock"),
        (products[2], TransactionType.STOCK_OUT, 170, "Contractor order"),
        (products[3], TransactionType.ADJUSTMENT, 0, "Damaged batch written off"),
    ]
    for product, txn_type, quantity, notes in movements:
        result = await stock_ledger.apply(db, product.id, txn_type, quantity, operator, notes=notes)
        print(f"   ✓ {product.sku} {txn_type} {quantity} -> 库存 {result.product.stock}（{result.product.status}）")


async def main():
    """主函数"""
    print("=" * 60)
    print("🚀 电工器材库存 - 演示数据初始化")
    print("=" * 60 + "\n")

    await ensure_tables_exist()

    async with SessionLocal() as db:
        try:
            await clear_all_data(db)
            admin = await create_users(db)
            operator = Operator(user_id=admin.id, user_name=admin.name)

            categories = await create_categories(db, operator)
            products = await create_products(db, operator, categories)
            await record_stock(db, operator, products)

            print("\n" + "=" * 60)
            print("✅ 演示数据初始化完成！")
            print("=" * 60)
        except Exception as e:
            await db.rollback()
            print(f"\n❌ 初始化失败: {e}")
            raise


if __name__ == "__main__":
    asyncio.run(main())
