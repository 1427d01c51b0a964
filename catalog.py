"""
Catalog data access

Read operations over the catalog partitions plus the bootstrap of the two
singleton documents (page hero, settings). Every call goes to the store; the
repository keeps no state of its own.

Query options coming from callers are sanitized before use and never raise:
blank or non-string `fields`/`ids` entries are dropped and an unknown
visibility flag is ignored, so a bad filter means "no filter". Callers that
need strict validation must check their input before calling in.

Absence is reported as None, both for a missing document and for an empty
result set. Store errors propagate unchanged.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from database import DocumentStore
from schemas import (
    CATEGORIES,
    COLLECTION_FIELDS,
    COLLECTIONS,
    PAGE_HERO,
    PAGE_HERO_ID,
    PRODUCT_FIELDS,
    PRODUCTS,
    SETTINGS,
    SETTINGS_ID,
    UPSELL_FIELDS,
    UPSELLS,
    VISIBILITY_FLAGS,
    MultiItemOptions,
    PageHero,
    Settings,
    SingleItemOptions,
    default_document,
)

logger = logging.getLogger(__name__)

# Always carried by listed entities so callers can sort and filter them
PRODUCT_LIST_KEYS = ("updatedAt", "visibility")
COLLECTION_LIST_KEYS = ("updatedAt", "index", "visibility", "collectionType")


# ---------- Option sanitation ----------

def _clean_strings(values: Any) -> List[str]:
    if not isinstance(values, (list, tuple)):
        return []
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def _clean_visibility(value: Any) -> Optional[str]:
    if isinstance(value, str):
        flag = value.strip().upper()
        if flag in VISIBILITY_FLAGS:
            return flag
    return None


def sanitize_single_item(item_id: Any, fields: Any = None) -> SingleItemOptions:
    return SingleItemOptions(
        id=item_id.strip() if isinstance(item_id, str) else "",
        fields=_clean_strings(fields),
    )


def sanitize_multi_item(ids: Any = None, fields: Any = None, visibility: Any = None) -> MultiItemOptions:
    """Duplicate ids are kept; an invalid visibility is dropped"""
    return MultiItemOptions(
        ids=_clean_strings(ids),
        fields=_clean_strings(fields),
        visibility=_clean_visibility(visibility),
    )


def sanitize_base(fields: Any = None, visibility: Any = None) -> MultiItemOptions:
    # Same visibility rule as sanitize_multi_item
    return MultiItemOptions(fields=_clean_strings(fields), visibility=_clean_visibility(visibility))


# ---------- Projection and ordering ----------

def _split(doc: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    data = dict(doc)
    return str(data.pop("_id")), data


def project(doc_id: str, data: Dict[str, Any], fields: List[str], allowed: FrozenSet[str]) -> Dict[str, Any]:
    """
    `id` plus the requested fields the entity allows and the document has.
    No requested fields means the whole document.
    """
    if fields:
        item = {f: data[f] for f in fields if f in allowed and f in data}
    else:
        item = dict(data)
    item["id"] = doc_id
    return item


def _project_listed(
    doc: Dict[str, Any], fields: List[str], allowed: FrozenSet[str], always: Iterable[str]
) -> Dict[str, Any]:
    doc_id, data = _split(doc)
    item = project(doc_id, data, fields, allowed)
    for key in always:
        if key in data:
            item[key] = data[key]
    return item


def _timestamp(value: Any) -> float:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value:
        try:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return 0.0
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    else:
        return 0.0
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def _index_key(value: Any) -> Tuple[int, float]:
    # Items without a numeric index go last
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return 0, float(value)
    return 1, 0.0


def newest_first(items: List[Dict[str, Any]], key: str = "updatedAt") -> List[Dict[str, Any]]:
    return sorted(items, key=lambda item: _timestamp(item.get(key)), reverse=True)


def by_index(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(items, key=lambda item: _index_key(item.get("index") if isinstance(item, dict) else None))


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _references(value: Any) -> List[Dict[str, Any]]:
    """Product references of a collection or upsell that carry a usable id"""
    if not isinstance(value, list):
        return []
    return [ref for ref in value if isinstance(ref, dict) and isinstance(ref.get("id"), str) and ref["id"]]


def _visibility_filter(visibility: Optional[str]) -> Optional[Dict[str, Any]]:
    return {"visibility": visibility} if visibility else None


class CatalogRepository:
    """Catalog reads over a DocumentStore"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def _get_one(self, partition: str, options: SingleItemOptions, allowed: FrozenSet[str]):
        if not options.id:
            return None
        doc = await self.store.partition(partition).get_by_id(options.id)
        if doc is None:
            return None
        doc_id, data = _split(doc)
        return project(doc_id, data, options.fields, allowed)

    async def _fetch_products(self, refs: List[Dict[str, Any]]) -> List[Optional[Dict[str, Any]]]:
        # One point read per reference, all in flight at once; results keep reference order
        products = self.store.partition(PRODUCTS)
        logger.debug("Resolving %d product references", len(refs))
        return await asyncio.gather(*(products.get_by_id(ref["id"]) for ref in refs))

    # ---------- Products ----------

    async def get_product(self, item_id: Any, fields: Any = None) -> Optional[Dict[str, Any]]:
        """
        Get a product by id. Optionally restrict the returned fields.

            await repo.get_product("12345", fields=["name", "pricing"])
        """
        return await self._get_one(PRODUCTS, sanitize_single_item(item_id, fields), PRODUCT_FIELDS)

    async def get_products(self, fields: Any = None, visibility: Any = None) -> Optional[List[Dict[str, Any]]]:
        """Products newest first, optionally restricted to one visibility"""
        options = sanitize_base(fields, visibility)
        where = _visibility_filter(options.visibility)
        logger.debug("Querying %s where %s", PRODUCTS, where)
        docs = await self.store.partition(PRODUCTS).query(where)
        if not docs:
            return None
        items = [_project_listed(doc, options.fields, PRODUCT_FIELDS, PRODUCT_LIST_KEYS) for doc in docs]
        return newest_first(items)

    async def get_products_by_ids(
        self, ids: Any, fields: Any = None, visibility: Any = None
    ) -> Optional[List[Dict[str, Any]]]:
        """
        Products whose id is in `ids`, newest first, fetched in a single query.
        The store may cap the size of `ids`; callers chunk larger sets.
        """
        options = sanitize_multi_item(ids, fields, visibility)
        if not options.ids:
            return None
        where = _visibility_filter(options.visibility)
        logger.debug("Querying %s for %d ids where %s", PRODUCTS, len(options.ids), where)
        docs = await self.store.partition(PRODUCTS).query_in_ids(options.ids, where)
        if not docs:
            return None
        items = [_project_listed(doc, options.fields, PRODUCT_FIELDS, PRODUCT_LIST_KEYS) for doc in docs]
        return newest_first(items)

    async def get_product_with_upsell(self, item_id: Any, fields: Any = None) -> Optional[Dict[str, Any]]:
        """
        Get a product and replace its `upsell` id with the upsell document,
        whose products are re-read from the products partition.

        Upsell products that no longer exist are left out. When the upsell
        itself is missing the product comes back with the plain id.
        """
        product = await self.get_product(item_id, fields)
        if not product or not isinstance(product.get("upsell"), str) or not product["upsell"]:
            return product

        upsell_doc = await self.store.partition(UPSELLS).get_by_id(product["upsell"])
        if upsell_doc is None:
            return product
        upsell_id, upsell = _split(upsell_doc)

        refs = _references(upsell.get("products"))
        found = await self._fetch_products(refs)
        resolved = []
        for ref, doc in zip(refs, found):
            if doc is None:
                continue
            doc_id, data = _split(doc)
            resolved.append({
                "index": ref.get("index"),
                "name": ref.get("name"),
                "id": doc_id,
                "slug": data.get("slug"),
                "mainImage": _section(data, "images").get("main"),
                "basePrice": _section(data, "pricing").get("basePrice"),
            })

        return {**product, "upsell": {**upsell, "id": upsell_id, "products": resolved}}

    # ---------- Collections ----------

    async def get_collection(self, item_id: Any, fields: Any = None) -> Optional[Dict[str, Any]]:
        return await self._get_one(COLLECTIONS, sanitize_single_item(item_id, fields), COLLECTION_FIELDS)

    async def _expand_collection_products(self, value: Any) -> List[Dict[str, Any]]:
        refs = _references(value)
        found = await self._fetch_products(refs)
        expanded = []
        for ref, doc in zip(refs, found):
            if doc is None:
                continue
            _, data = _split(doc)
            # The reference's id and index win over the product's own fields
            expanded.append({**data, "id": ref["id"], "index": ref.get("index")})
        return expanded

    async def _list_collection(self, doc: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
        item = _project_listed(doc, fields, COLLECTION_FIELDS, COLLECTION_LIST_KEYS)
        if "products" in fields:
            item["products"] = await self._expand_collection_products(doc.get("products"))
        return item

    async def get_collections(self, fields: Any = None, visibility: Any = None) -> Optional[List[Dict[str, Any]]]:
        """
        Collections ordered by index. Asking for "products" replaces each
        product reference with the full product document.
        """
        options = sanitize_base(fields, visibility)
        where = _visibility_filter(options.visibility)
        logger.debug("Querying %s where %s", COLLECTIONS, where)
        docs = await self.store.partition(COLLECTIONS).query(where)
        if not docs:
            return None
        items = await asyncio.gather(*(self._list_collection(doc, options.fields) for doc in docs))
        return by_index(list(items))

    # ---------- Upsells ----------

    async def get_upsells(self) -> Optional[List[Dict[str, Any]]]:
        docs = await self.store.partition(UPSELLS).query()
        if not docs:
            return None
        items = []
        for doc in docs:
            doc_id, data = _split(doc)
            items.append({**data, "id": doc_id})
        return newest_first(items)

    async def get_upsell(self, item_id: Any, fields: Any = None) -> Optional[Dict[str, Any]]:
        """Get an upsell with its products ordered by index"""
        options = sanitize_single_item(item_id, fields)
        upsell = await self._get_one(UPSELLS, options, UPSELL_FIELDS)
        if upsell is None:
            return None
        if not options.fields or "products" in options.fields:
            products = upsell.get("products")
            upsell["products"] = by_index(products) if isinstance(products, list) else []
        return upsell

    # ---------- Categories ----------

    async def get_categories(self) -> Optional[List[Dict[str, Any]]]:
        docs = await self.store.partition(CATEGORIES).query()
        if not docs:
            return None
        items = []
        for doc in docs:
            doc_id, data = _split(doc)
            items.append({**data, "id": doc_id})
        return by_index(items)

    # ---------- Singletons ----------

    async def _get_or_create(self, partition: str, doc_id: str, default: Dict[str, Any]) -> Dict[str, Any]:
        documents = self.store.partition(partition)
        doc = await documents.get_by_id(doc_id)
        if doc is None:
            doc = await documents.create_if_absent(doc_id, default)
            logger.info("Created default %s/%s", partition, doc_id)
        return doc

    async def get_page_hero(self) -> Dict[str, Any]:
        """The homepage hero, created with empty defaults on first read"""
        doc = await self._get_or_create(PAGE_HERO, PAGE_HERO_ID, default_document(PageHero))
        doc_id, data = _split(doc)
        return {"id": doc_id, **data}

    async def get_settings(self) -> Dict[str, Any]:
        """
        Site settings. The stored key set is reconciled with the defaults on
        every read: missing sections are added, unknown ones removed, and the
        document is written back when anything changed.
        """
        defaults = default_document(Settings)
        doc = await self._get_or_create(SETTINGS, SETTINGS_ID, defaults)
        _, settings = _split(doc)

        missing = [key for key in defaults if key not in settings]
        extra = [key for key in settings if key not in defaults]
        if missing or extra:
            for key in missing:
                settings[key] = defaults[key]
            for key in extra:
                del settings[key]
            await self.store.partition(SETTINGS).put(SETTINGS_ID, settings)
            logger.info("Reconciled settings: added %s, removed %s", missing, extra)
        return settings
