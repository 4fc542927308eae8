from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from config import settings
from database import Base, engine
from datetime import datetime
import routers.medicine as medicine
import routers.inventory_batches as inventory_batches
import routers.sale_orders as sale_orders
import routers.reports as reports
from utils.events import change_feed, log_change, INVENTORY_BATCHES, MEDICINES, SALE_ORDERS
import models  # noqa: F401  registers every table on Base.metadata
import os
import logging
from fastapi.openapi.utils import get_openapi


os.makedirs(settings.LOG_DIR, exist_ok=True)

# One log file per process start
current_time_str = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
LOG_FILE = os.path.join(settings.LOG_DIR, f"app_{current_time_str}.log")

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    filename=LOG_FILE,
    filemode='a'
)

# Also log to the console
console_handler = logging.StreamHandler()
console_handler.setLevel(settings.LOG_LEVEL)
console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logging.getLogger().addHandler(console_handler)

logger = logging.getLogger(__name__)
logger.info("Application starting up...")


# Create database tables
Base.metadata.create_all(bind=engine)

for channel in (SALE_ORDERS, INVENTORY_BATCHES, MEDICINES):
    change_feed.subscribe(channel, log_change)


app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Clinic Pharmacy API",
        version="1.0.0",
        description="Medicine catalog, batch inventory and FEFO checkout for clinic pharmacies",
        routes=app.routes,
    )
    openapi_schema["components"]["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi


app.include_router(medicine.router)
app.include_router(inventory_batches.router)
app.include_router(sale_orders.router)
app.include_router(reports.router)

@app.get("/")
async def test_route():
    return {"message": "Clinic pharmacy API is running"}
