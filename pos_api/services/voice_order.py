"""Voice assistant: recognised speech text -> order draft changes.

The AI endpoint turns free text into an AIAction; product references in
that action are then matched against the menu with plain string
heuristics, because the model often returns titles instead of ids.
"""
from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError
from sqlalchemy.orm import Session

from pos_api.core.errors import AIClientError, ProductUnavailable, RecordNotFound
from pos_api.db.models import OrderType, Restaurant
from pos_api.schemas.pricing import LineItem, OrderDraft, ProductSnapshot
from pos_api.schemas.voice import AIAction, VoiceParseOut, VoiceParseRequest
from pos_api.services import catalog, pricing
from pos_api.services.ai_client import AIClient

logger = logging.getLogger(__name__)

SIMILARITY_TH = 0.8
MIN_WORD_LEN = 3

_LANG_NAMES = {"ru": "Russian", "ka": "Georgian"}


# -----------------------
# Matching
# -----------------------
def normalize_title(title: str) -> str:
    t = re.sub(r"\s+", " ", (title or "").lower().strip())
    return re.sub(r"[.,!?;:]$", "", t)


def edit_distance(a: str, b: str) -> int:
    a, b = a.lower(), b.lower()
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        cur = [i]
        for j, cb in enumerate(b, 1):
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + (ca != cb)))
        prev = cur
    return prev[-1]


def similarity(a: str, b: str) -> float:
    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - edit_distance(longer, shorter)) / len(longer)


def _words_match(search_words: list[str], product_words: list[str]) -> bool:
    return all(
        any(
            pw.startswith(sw) or sw.startswith(pw) or similarity(pw, sw) > SIMILARITY_TH
            for pw in product_words
        )
        for sw in search_words
    )


def find_product(
    products: list[ProductSnapshot], product_id: str | None, title: str | None
) -> ProductSnapshot | None:
    """id, then exact title, then containment, then word-by-word fuzzy match."""
    if product_id:
        for p in products:
            if p.id == product_id:
                return p
    if not title:
        return None

    needle = normalize_title(title)
    if not needle:
        return None

    for p in products:
        if normalize_title(p.title) == needle:
            return p

    for p in products:
        name = normalize_title(p.title)
        if name and (needle in name or name in needle):
            return p

    search_words = [w for w in needle.split() if len(w) >= MIN_WORD_LEN]
    if search_words:
        for p in products:
            if _words_match(search_words, normalize_title(p.title).split()):
                return p
    return None


# -----------------------
# Draft mutation
# -----------------------
def _add(items: list[LineItem], product_id: str, qty: int, comment: str | None) -> list[LineItem]:
    out = list(items)
    for i, it in enumerate(out):
        if it.product_id == product_id and not it.additive_ids:
            out[i] = it.model_copy(update={"quantity": it.quantity + qty})
            return out
    out.append(LineItem(product_id=product_id, quantity=qty, comment=comment))
    return out


def apply_action(
    action: AIAction,
    items: list[LineItem],
    order_type: OrderType,
    products: list[ProductSnapshot],
    restaurant_id: str,
) -> tuple[list[LineItem], OrderType, list[str], list[str]]:
    """Returns (items, order type, added titles, unmatched titles)."""
    added: list[str] = []
    not_found: list[str] = []

    if action.action == "ADD_ITEMS":
        for req in action.items_to_add:
            product = find_product(products, req.product_id, req.product_title)
            label = req.product_title or req.product_id or "?"
            if product is None:
                logger.warning(f"[voice] product not found: {label}")
                not_found.append(label)
                continue
            try:
                pricing.ensure_orderable(product, restaurant_id)
            except ProductUnavailable:
                not_found.append(product.title)
                continue
            items = _add(items, product.id, req.quantity, req.comment)
            added.append(f"{product.title} x{req.quantity}")

    elif action.action == "REMOVE_ITEMS":
        drop = set(action.items_to_remove)
        items = [it for it in items if it.product_id not in drop]

    elif action.action == "MODIFY_QUANTITY":
        wanted = {m.product_id: m.quantity for m in action.items_to_modify}
        out: list[LineItem] = []
        for it in items:
            if it.product_id not in wanted:
                out.append(it)
            elif wanted[it.product_id] > 0:
                out.append(it.model_copy(update={"quantity": wanted[it.product_id]}))
        items = out

    elif action.action == "CLEAR_ORDER":
        items = []

    elif action.action == "SET_ORDER_TYPE":
        if action.order_type is not None:
            order_type = action.order_type

    return items, order_type, added, not_found


# -----------------------
# Prompt
# -----------------------
def build_system_prompt(products: list[ProductSnapshot], restaurant_id: str, language: str) -> str:
    menu = "\n".join(
        f"- {p.title} (id: {p.id}, price: {pricing.resolve_unit_price(p, restaurant_id)})"
        for p in products
    )
    return (
        "You assist a restaurant waiter. Turn the guest's request into a JSON object:\n"
        '{"action": "ADD_ITEMS|REMOVE_ITEMS|MODIFY_QUANTITY|CLEAR_ORDER|SET_ORDER_TYPE|NONE",\n'
        ' "items_to_add": [{"product_id": str, "product_title": str, "quantity": int, "comment": str}],\n'
        ' "items_to_remove": [product_id],\n'
        ' "items_to_modify": [{"product_id": str, "quantity": int}],\n'
        ' "order_type": "DINE_IN|TAKEAWAY|DELIVERY|BANQUET" or null,\n'
        ' "confidence": 0..1, "message": str}\n'
        "Rules: match products by exact or similar title; skip unknown products; "
        "quantity defaults to 1; \"two borscht\" means quantity 2. "
        f"Write message in {_LANG_NAMES.get(language, 'Russian')}.\n\n"
        f"Menu:\n{menu}"
    )


def build_user_prompt(text: str, items: list[LineItem], products: list[ProductSnapshot]) -> str:
    titles = {p.id: p.title for p in products}
    current = [
        {"product_id": it.product_id, "title": titles.get(it.product_id, ""), "quantity": it.quantity}
        for it in items
    ]
    return f"Current order: {json.dumps(current, ensure_ascii=False)}\nGuest said: {text}"


def parse_voice_order(
    db: Session, client: AIClient, body: VoiceParseRequest, restaurant_id: str
) -> VoiceParseOut:
    restaurant = db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()
    if restaurant is None:
        raise RecordNotFound("restaurant not found")
    products = catalog.load_menu(db, restaurant.network_id)
    orderable = [p for p in products if not pricing.is_stop_listed(p, restaurant_id)]

    raw = client.complete_json(
        build_system_prompt(orderable, restaurant_id, body.language),
        build_user_prompt(body.text, body.items, products),
    )
    try:
        action = AIAction.model_validate(raw)
    except ValidationError as e:
        raise AIClientError(f"AI reply has an unexpected shape: {e.error_count()} errors") from e
    logger.info(f"[voice] action={action.action} confidence={action.confidence}")

    items, order_type, added, not_found = apply_action(
        action, list(body.items), body.type, products, restaurant_id
    )

    lookup = {p.id: p for p in products}
    lookup.update(catalog.build_product_lookup(db, [it.product_id for it in items if it.product_id not in lookup]))
    draft = OrderDraft(restaurant_id=restaurant_id, type=order_type, items=items)
    breakdown = pricing.price_draft(draft, lookup).rounded()

    return VoiceParseOut(
        action=action.action,
        type=order_type,
        items=items,
        added=added,
        not_found=not_found,
        confidence=action.confidence,
        message=action.message,
        breakdown=breakdown,
    )
