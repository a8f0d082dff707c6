"""
Cart Store Module

Redis-backed persistence for shopping carts. The cart value is a JSON record
with plain numeric fields and no timestamps:

    Key: "cart-user123"
    Value: '{
        "ownerId": "user123",
        "items": [
            {"id": "prod-1", "name": "Linen Shirt", "price": 100.0, "discountPrice": 80.0,
             "quantity": 2, "imageString": "https://...", "size": "M", "color": "red"}
        ]
    }'

Fault tolerance:
    Every Redis call is isolated. A RedisError (connection refused, timeout,
    read-only replica...) or an unreadable payload is logged and turned into a
    neutral result: no cart for reads, False or CacheUnavailable for writes.
    Callers must assume the cache can silently forget a cart.

Invariants:
    - A stored cart always has at least one line; writing an empty cart deletes the key.
    - Each write resets the TTL, so abandoned carts expire on their own.

Concurrency:
    mutate() performs read-modify-write under WATCH/MULTI. If another request
    changes the cart between the read and the write, Redis aborts the
    transaction and the mutation is replayed on the fresh value.

Example Usage:
    ```python
    redis_client = redis.Redis(host="redis", port=6379, db=0, decode_responses=True)
    store = CartStore(redis_client)

    def add_one(cart):
        cart = cart or Cart(owner_id="user123")
        cart.items.append(line)
        return cart

    store.mutate("user123", add_one)
    store.get("user123")      # Cart(owner_id="user123", items=[...])
    store.delete("user123")
    ```
"""

import logging
from typing import Callable, NamedTuple, Optional

import redis
from pydantic import ValidationError as SchemaError

from storefront.cart.schemas import Cart
from storefront.config import settings
from storefront.errors import CacheUnavailable

logger = logging.getLogger(__name__)

CartMutation = Callable[[Optional[Cart]], Optional[Cart]]


class CartRead(NamedTuple):
    """Result of a cache access: the cart (if any) and the cache error (if any)."""

    cart: Optional[Cart]
    error: Optional[CacheUnavailable] = None


class CartStore:
    """Repository for managing shopping carts in Redis."""

    CART_KEY_PREFIX = "cart-"

    def __init__(
        self,
        redis_client: Optional[redis.Redis],
        ttl: int = settings.cart_ttl_seconds,
        max_write_retries: int = settings.cart_max_write_retries,
    ):
        """Initialize cart store. A None client behaves like an unreachable cache."""
        self.redis = redis_client
        self.ttl = ttl
        self.max_write_retries = max_write_retries

    def _key(self, owner_id: str) -> str:
        return f"{self.CART_KEY_PREFIX}{owner_id}"

    def _unavailable(self, action: str, owner_id: str, error: Exception) -> CacheUnavailable:
        logger.error(f"Redis {action} error for cart of {owner_id}: {error}", extra={"owner_id": owner_id})
        return CacheUnavailable(f"Cart cache unavailable during {action}")

    def _decode(self, owner_id: str, raw: Optional[str]) -> Optional[Cart]:
        if raw is None:
            return None
        try:
            cart = Cart.model_validate_json(raw)
        except SchemaError as e:
            logger.error(f"Discarding unreadable cart for {owner_id}: {e}", extra={"owner_id": owner_id})
            return None
        return cart if cart.items else None

    def read(self, owner_id: str) -> CartRead:
        """Get the cart together with any cache error."""
        if self.redis is None:
            return CartRead(None, CacheUnavailable("Cart cache not configured"))
        try:
            raw = self.redis.get(self._key(owner_id))
        except redis.RedisError as e:
            return CartRead(None, self._unavailable("get", owner_id, e))
        return CartRead(self._decode(owner_id, raw))

    def get(self, owner_id: str) -> Optional[Cart]:
        """Get user's cart, None if missing or the cache is unavailable."""
        return self.read(owner_id).cart

    def set(self, owner_id: str, cart: Cart) -> bool:
        """Store the cart. An empty cart is deleted instead. Returns False if the cache failed."""
        if not cart.items:
            return self.delete(owner_id)
        if self.redis is None:
            return False
        try:
            self.redis.set(self._key(owner_id), cart.to_json(), ex=self.ttl)
        except redis.RedisError as e:
            self._unavailable("set", owner_id, e)
            return False
        return True

    def delete(self, owner_id: str) -> bool:
        """Delete user's cart. Returns False if the cache failed."""
        if self.redis is None:
            return False
        try:
            self.redis.delete(self._key(owner_id))
        except redis.RedisError as e:
            self._unavailable("delete", owner_id, e)
            return False
        logger.info(f"Cleared cart for user {owner_id}", extra={"owner_id": owner_id})
        return True

    def mutate(self, owner_id: str, mutation: CartMutation) -> CartRead:
        """Apply ``mutation`` to the stored cart under optimistic concurrency.

        ``mutation`` receives the current cart (or None) and returns the new cart;
        returning None or an empty cart deletes the record. Exceptions raised by
        ``mutation`` propagate and leave the stored cart untouched.
        """
        if self.redis is None:
            return CartRead(None, CacheUnavailable("Cart cache not configured"))

        key = self._key(owner_id)
        try:
            with self.redis.pipeline() as pipe:
                for attempt in range(self.max_write_retries):
                    try:
                        pipe.watch(key)
                        current = self._decode(owner_id, pipe.get(key))
                        updated = mutation(current)

                        pipe.multi()
                        if updated is None or not updated.items:
                            pipe.delete(key)
                            updated = None
                        else:
                            pipe.set(key, updated.to_json(), ex=self.ttl)
                        pipe.execute()
                        return CartRead(updated)
                    except redis.WatchError:
                        logger.warning(
                            f"Concurrent update of cart for {owner_id}, retry {attempt + 1}/{self.max_write_retries}",
                            extra={"owner_id": owner_id},
                        )
                        continue
        except redis.RedisError as e:
            return CartRead(None, self._unavailable("update", owner_id, e))

        logger.error(f"Failed to update cart for {owner_id} after {self.max_write_retries} retries")
        return CartRead(None, CacheUnavailable("Cart was modified concurrently, please try again"))
