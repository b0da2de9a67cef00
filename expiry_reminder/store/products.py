"""Supabase product reader with paging and retries."""
import asyncio
import logging
from typing import Optional
from supabase import create_client, Client
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from expiry_reminder.config import Config, config
from expiry_reminder.evaluate.models import ProductDocument

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


def create_supabase_client(settings: Config = config) -> Client:
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE:
        raise ValueError("Supabase configuration missing")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE)


class SupabaseProductStore:
    """Reads product documents from a Supabase table."""

    def __init__(self, settings: Config = config, client: Optional[Client] = None):
        self.client: Client = client or create_supabase_client(settings)
        self.table = settings.PRODUCTS_TABLE

    async def list_all_products(self) -> list[ProductDocument]:
        """Fetch every product (runs in thread pool since Supabase is sync)."""
        loop = asyncio.get_running_loop()
        try:
            rows = await loop.run_in_executor(None, self._fetch_all_sync)
        except Exception as e:
            logger.error(f"Supabase read error on {self.table}: {e}")
            raise
        logger.info(f"Fetched {len(rows)} products from {self.table}")
        return [ProductDocument.from_row(row) for row in rows]

    def _fetch_all_sync(self) -> list[dict]:
        rows: list[dict] = []
        start = 0
        while True:
            page = self._fetch_page_sync(start, start + PAGE_SIZE - 1)
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            start += PAGE_SIZE

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((Exception,)),
        reraise=True,
    )
    def _fetch_page_sync(self, start: int, end: int) -> list[dict]:
        response = (
            self.client.table(self.table)
            .select("*")
            .order("id")
            .range(start, end)
            .execute()
        )
        return response.data or []

    async def test_connection(self) -> bool:
        """Test Supabase connection."""
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: (
                    self.client.table(self.table)
                    .select("id", count="exact")
                    .limit(1)
                    .execute()
                ),
            )
            return True
        except Exception as e:
            logger.error(f"Supabase connection test failed: {e}")
            return False
