# orderflow/catalog_service/main.py
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Catalog Service (dev mock)")


RESTAURANTS = {
    "R1": {"id": "R1", "name": "Thakali Kitchen", "vendor_id": "V1", "delivery_fee": 60, "is_active": True},
    "R2": {"id": "R2", "name": "Momo Corner", "vendor_id": "V2", "delivery_fee": 50, "is_active": True},
    "R3": {"id": "R3", "name": "Closed Cafe", "vendor_id": "V3", "delivery_fee": 40, "is_active": False},
}

MENU_ITEMS = {
    "M1": {"id": "M1", "restaurant_id": "R1", "name": "Dal Bhat Set", "price": 200, "is_available": True},
    "M2": {"id": "M2", "restaurant_id": "R1", "name": "Thakali Khana", "price": 350, "is_available": True},
    "M3": {"id": "M3", "restaurant_id": "R2", "name": "Buff Momo", "price": 150, "is_available": True},
    "M4": {"id": "M4", "restaurant_id": "R2", "name": "Jhol Momo", "price": 180, "is_available": False},
}


@app.get("/restaurants/{restaurant_id}")
def get_restaurant(restaurant_id: str):
    restaurant = RESTAURANTS.get(restaurant_id)
    if not restaurant:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


@app.get("/menu-items/{menu_item_id}")
def get_menu_item(menu_item_id: str):
    item = MENU_ITEMS.get(menu_item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item
