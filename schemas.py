"""
Database Schemas for the storefront catalog (MongoDB via helper in database.py)

Each top-level model describes the documents of one partition. Documents are
stored with camelCase keys, so every model uses a camelCase alias generator.
- Product -> "products"
- Collection -> "collections"
- Upsell -> "upsells"
- Category -> "categories"
- Settings -> "settings" (single document "defaultSettings")
- PageHero -> "pageHero" (single document "homepageHero")
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any, FrozenSet, Literal, Type


Visibility = Literal["DRAFT", "PUBLISHED", "HIDDEN"]
VISIBILITY_FLAGS = ("DRAFT", "PUBLISHED", "HIDDEN")

PRODUCTS = "products"
COLLECTIONS = "collections"
UPSELLS = "upsells"
CATEGORIES = "categories"
SETTINGS = "settings"
PAGE_HERO = "pageHero"

SETTINGS_ID = "defaultSettings"
PAGE_HERO_ID = "homepageHero"


class CatalogModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Products
class Pricing(CatalogModel):
    base_price: float = Field(0, ge=0)
    sale_price: float = Field(0, ge=0)
    discount_percentage: float = Field(0, ge=0, le=100)


class ProductImages(CatalogModel):
    main: str = ""
    gallery: List[str] = Field(default_factory=list)


class Color(CatalogModel):
    name: str
    image: str


class SizeColumn(CatalogModel):
    label: str
    order: int


class SizeTable(CatalogModel):
    columns: List[SizeColumn] = Field(default_factory=list)
    rows: List[Dict[str, str]] = Field(default_factory=list)


class SizeChart(CatalogModel):
    inches: SizeTable = Field(default_factory=SizeTable)
    centimeters: SizeTable = Field(default_factory=SizeTable)


class ProductOptions(CatalogModel):
    colors: List[Color] = Field(default_factory=list)
    sizes: Optional[SizeChart] = None


class KeyPoint(CatalogModel):
    index: int
    text: str


class Highlights(CatalogModel):
    headline: str = ""
    key_points: List[KeyPoint] = Field(default_factory=list)


class Seo(CatalogModel):
    meta_title: str = ""
    meta_description: str = ""
    keywords: List[str] = Field(default_factory=list)


class SourceInfo(CatalogModel):
    """Where the product was sourced from"""
    platform: str = ""
    platform_url: str = ""
    store: str = ""
    store_id: str = ""
    store_url: str = ""
    product_url: str = ""


class QuantityBreak(CatalogModel):
    quantity: int = Field(..., ge=1)
    discount: float = Field(0, ge=0)
    price_per_item: float = Field(0, ge=0)
    total_price: float = Field(0, ge=0)


class AverageOrderValueBooster(CatalogModel):
    name: str
    promotional_message: str = ""
    quantity_breaks: Optional[List[QuantityBreak]] = None


class BoughtTogetherItem(CatalogModel):
    id: str
    name: str
    price: float = Field(0, ge=0)


class Product(CatalogModel):
    """Product document; `upsell` holds the id of an Upsell document"""
    id: str
    name: str
    slug: str
    category: str = ""
    description: str = ""
    highlights: Highlights = Field(default_factory=Highlights)
    pricing: Pricing = Field(default_factory=Pricing)
    images: ProductImages = Field(default_factory=ProductImages)
    options: ProductOptions = Field(default_factory=ProductOptions)
    seo: Seo = Field(default_factory=Seo)
    visibility: Visibility = "DRAFT"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    source_info: Optional[SourceInfo] = None
    upsell: Optional[str] = Field(None, description="Reference to an Upsell id")
    average_order_value_booster: Optional[AverageOrderValueBooster] = None
    frequently_bought_together: Optional[List[BoughtTogetherItem]] = None


# Collections
class DateRange(CatalogModel):
    start_date: str
    end_date: str


class BannerImages(CatalogModel):
    desktop_image: str = ""
    mobile_image: str = ""


class CollectionProduct(CatalogModel):
    index: int
    id: str


class Collection(CatalogModel):
    """Ordered group of product references"""
    id: str
    index: int = 0
    title: str
    slug: str
    campaign_duration: Optional[DateRange] = None
    collection_type: str = ""
    banner_images: Optional[BannerImages] = None
    products: List[CollectionProduct] = Field(default_factory=list)
    visibility: Visibility = "DRAFT"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# Upsells
class UpsellProduct(CatalogModel):
    """Snapshot of a product inside an upsell, re-resolved on read"""
    index: int
    id: str
    slug: str = ""
    name: str = ""
    main_image: str = ""
    base_price: float = 0


class Upsell(CatalogModel):
    id: str
    main_image: str = ""
    pricing: Pricing = Field(default_factory=Pricing)
    visibility: Visibility = "DRAFT"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    products: List[UpsellProduct] = Field(default_factory=list)


class Category(CatalogModel):
    id: str
    index: int = 0
    name: str
    image: str = ""
    visibility: Visibility = "DRAFT"


# Singletons
class CategorySection(CatalogModel):
    visibility: str = "HIDDEN"


class Settings(CatalogModel):
    """Site settings; the stored key set always equals this model's key set"""
    category_section: CategorySection = Field(default_factory=CategorySection)


class PageHeroImages(CatalogModel):
    desktop: str = ""
    mobile: str = ""


class PageHero(CatalogModel):
    images: PageHeroImages = Field(default_factory=PageHeroImages)
    title: str = ""
    destination_url: str = ""
    visibility: str = "HIDDEN"


def default_document(model: Type[CatalogModel]) -> Dict[str, Any]:
    """Stored form of a model built entirely from its defaults"""
    return model().model_dump(by_alias=True)


def projectable_fields(model: Type[CatalogModel]) -> FrozenSet[str]:
    """Document keys a caller may ask for when projecting an entity"""
    return frozenset(
        info.alias or name for name, info in model.model_fields.items() if name != "id"
    )


PRODUCT_FIELDS = projectable_fields(Product)
COLLECTION_FIELDS = projectable_fields(Collection)
UPSELL_FIELDS = projectable_fields(Upsell)


# Query options after sanitation (not collections)
class SingleItemOptions(BaseModel):
    id: str = ""
    fields: List[str] = Field(default_factory=list)


class MultiItemOptions(BaseModel):
    ids: List[str] = Field(default_factory=list)
    fields: List[str] = Field(default_factory=list)
    visibility: Optional[Visibility] = None
