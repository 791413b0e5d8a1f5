from sqlalchemy import select

from app.shopbook.db.models import Shop


class ShopRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, shop_id: str):
        stmt = select(Shop).where(Shop.id == shop_id)
        return self.db.execute(stmt).scalars().first()

    def get_business_type(self, shop_id: str) -> str | None:
        stmt = select(Shop.business_type).where(Shop.id == shop_id)
        return self.db.execute(stmt).scalars().first()
