# mummy_meals/services/lock_service.py
import redis

from mummy_meals.utils.logging import get_logger
from mummy_meals.utils.retry import poll_until_true, redis_retry
from mummy_meals.utils.settings import REDIS_URL

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nie mozna wcisnac sie miedzy GET a DEL
#wiec lock zwalnia tylko ten kto go zalozyl


class LockService:
    """
    -lock na realizacje sesji platnosci (webhook i strona powrotu moga przyjsc naraz)
    -zwalnianie locka tylko przez wlasciciela
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def checkout_key(session_id: str) -> str:
        return f"checkout:{session_id}:lock"

    @redis_retry()
    def acquire_checkout_lock(self, session_id: str, owner: str, ttl: int) -> bool:
        key = self.checkout_key(session_id)
        logger.info(f"Acquire lock {key} for {owner}")
        #SET checkout:cs_123:lock "<owner>" NX EX 30
        return bool(self.redis.set(name=key, value=owner, nx=True, ex=ttl))

    def wait_for_checkout_lock(self, session_id: str, owner: str, ttl: int, timeout: float) -> bool:
        """Czeka az drugi proces skonczy realizacje tej samej sesji."""
        return poll_until_true(timeout)(self.acquire_checkout_lock)(session_id, owner, ttl)

    @redis_retry()
    def release_checkout_lock(self, session_id: str, owner: str) -> bool:
        key = self.checkout_key(session_id)
        logger.info(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)
