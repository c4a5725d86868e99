# newsdrip/utils/rate_limiting.py
import logging
from newsdrip.database.connection import Database

logger = logging.getLogger(__name__)

class RateLimiter:
    def __init__(self, db: Database):
        self.db = db

    async def check_rate_limit(
        self,
        identifier: str,
        max_requests: int = 3,
        window: int = 900,
        endpoint: str = "subscribe"
    ) -> bool:
        """Check if request is within rate limits"""
        try:
            async with self.db.acquire() as connection:
                # Clean old entries first
                await connection.execute(
                    "DELETE FROM rate_limits WHERE window_start < NOW() - make_interval(secs => $1)",
                    float(window)
                )

                current_count = await connection.fetchval("""
                    SELECT COALESCE(SUM(requests_count), 0)
                    FROM rate_limits
                    WHERE identifier = $1 AND endpoint = $2
                    AND window_start > NOW() - make_interval(secs => $3)
                """, identifier, endpoint, float(window))

                if current_count and current_count >= max_requests:
                    logger.warning(f"Rate limit exceeded for {identifier} on {endpoint}")
                    return False

                # Record this request
                await connection.execute("""
                    INSERT INTO rate_limits (identifier, endpoint, requests_count, window_start)
                    VALUES ($1, $2, 1, CURRENT_TIMESTAMP)
                """, identifier, endpoint)

            return True

        except Exception as e:
            logger.error(f"Rate limiting check failed: {e}")
            # Allow request if rate limiting fails
            return True
