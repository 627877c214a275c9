import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete, atomic because redis runs the script as one step
# nothing can slip in between GET and DEL
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    -per payment "resolution in flight" marker
    -taken when a resolution is scheduled, dropped when it ran
    -the recovery sweep only re-schedules payments whose marker is gone
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(payment_id: int) -> str:
        return f"payment:{payment_id}:resolution"

    @redis_retry()
    def acquire_resolution_lock(self, payment_id: int, token: str, ttl: int) -> bool:
        key = self._key(payment_id)
        logger.info(f"Acquire lock {key} ({token})")
        # SET payment:1:resolution "TXN..." NX EX 60
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_resolution_lock(self, payment_id: int, token: str) -> bool:
        key = self._key(payment_id)
        logger.info(f"Release lock {key} ({token})")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
