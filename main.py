import os
import logging
from typing import List, Optional, Dict, Any
from fastapi import FastAPI, HTTPException, Query, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import database
from catalog import CatalogRepository

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def get_repository() -> CatalogRepository:
    if database.store is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return CatalogRepository(database.store)


app = FastAPI(title="Storefront Catalog API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": f"Store error: {str(exc)[:80]}"})


@app.get("/")
def read_root():
    return {"message": "Storefront Catalog Backend Running"}


# Products
@app.get("/api/products")
async def list_products(
    fields: Optional[List[str]] = Query(None),
    visibility: Optional[str] = None,
    repo: CatalogRepository = Depends(get_repository),
):
    return await repo.get_products(fields=fields, visibility=visibility) or []


# Declared before /api/products/{product_id} so "by-ids" is not taken for an id
@app.get("/api/products/by-ids")
async def list_products_by_ids(
    ids: Optional[List[str]] = Query(None),
    fields: Optional[List[str]] = Query(None),
    visibility: Optional[str] = None,
    repo: CatalogRepository = Depends(get_repository),
):
    return await repo.get_products_by_ids(ids, fields=fields, visibility=visibility) or []


@app.get("/api/products/{product_id}")
async def get_product(
    product_id: str,
    fields: Optional[List[str]] = Query(None),
    repo: CatalogRepository = Depends(get_repository),
):
    product = await repo.get_product(product_id, fields=fields)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.get("/api/products/{product_id}/with-upsell")
async def get_product_with_upsell(
    product_id: str,
    fields: Optional[List[str]] = Query(None),
    repo: CatalogRepository = Depends(get_repository),
):
    product = await repo.get_product_with_upsell(product_id, fields=fields)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# Collections
@app.get("/api/collections")
async def list_collections(
    fields: Optional[List[str]] = Query(None),
    visibility: Optional[str] = None,
    repo: CatalogRepository = Depends(get_repository),
):
    return await repo.get_collections(fields=fields, visibility=visibility) or []


@app.get("/api/collections/{collection_id}")
async def get_collection(
    collection_id: str,
    fields: Optional[List[str]] = Query(None),
    repo: CatalogRepository = Depends(get_repository),
):
    collection = await repo.get_collection(collection_id, fields=fields)
    if collection is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    return collection


# Upsells
@app.get("/api/upsells")
async def list_upsells(repo: CatalogRepository = Depends(get_repository)):
    return await repo.get_upsells() or []


@app.get("/api/upsells/{upsell_id}")
async def get_upsell(
    upsell_id: str,
    fields: Optional[List[str]] = Query(None),
    repo: CatalogRepository = Depends(get_repository),
):
    upsell = await repo.get_upsell(upsell_id, fields=fields)
    if upsell is None:
        raise HTTPException(status_code=404, detail="Upsell not found")
    return upsell


# Storefront
@app.get("/api/categories")
async def list_categories(repo: CatalogRepository = Depends(get_repository)):
    return await repo.get_categories() or []


@app.get("/api/page-hero")
async def get_page_hero(repo: CatalogRepository = Depends(get_repository)):
    return await repo.get_page_hero()


@app.get("/api/settings")
async def get_settings(repo: CatalogRepository = Depends(get_repository)):
    return await repo.get_settings()


@app.get("/test")
async def test_database():
    response: Dict[str, Any] = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }

    if database.store is not None:
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
        try:
            collections = await database.store.list_partitions()
            response["collections"] = collections[:10]
            response["database"] = "✅ Connected & Working"
        except PyMongoError as e:
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
    else:
        response["database"] = "⚠️  Available but not initialized"

    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
