# sourcing/services/product_importer.py

"""Import one product, by URL or external id, into a ProductDraft."""

import asyncio
import logging

from sourcing.clients.platform_api import PlatformApiClient
from sourcing.config.settings import Settings
from sourcing.errors import SourcingError
from sourcing.models.draft import ProductDraft
from sourcing.services.fallback_chain import FallbackChain
from sourcing.services.normalizer import (
    ProductNormalizer,
    validate_product_url,
)

logger = logging.getLogger("product_sourcing.importer")


class ProductImporter:
    """Routes an import through the structured API, then the fallback chain.

    Either collaborator may be None when it is not configured.
    """

    def __init__(
        self,
        api_client: PlatformApiClient | None = None,
        chain: FallbackChain | None = None,
        prefer_api: bool = True,
    ) -> None:
        self.api_client = api_client
        self.chain = chain
        self.prefer_api = prefer_api

    async def import_product(self, source: str) -> ProductDraft | None:
        """Return a draft for *source* (URL or numeric id), or None.

        Raises UnsupportedSourceError for a URL that is not http(s) or
        not on a supported platform.
        """
        source = source.strip()

        if source.isdigit():
            if self.api_client is None:
                logger.warning(
                    "Bare id %s given but no API client configured", source,
                )
                return None
            return await self._from_api(source)

        platform = validate_product_url(source)
        external_id = None
        if platform == Settings.API_PLATFORM:
            external_id = PlatformApiClient.extract_external_id(source)

        if (
            self.prefer_api
            and self.api_client is not None
            and external_id is not None
        ):
            draft = await self._from_api(external_id)
            if draft is not None:
                return draft
            logger.info("API lookup failed for %s, using fallback chain", source)

        if self.chain is None:
            logger.warning("No fallback chain configured for %s", source)
            return None
        return await self.chain.resolve(source, platform, external_id)

    async def _from_api(self, external_id: str) -> ProductDraft | None:
        if self.api_client is None:
            return None
        try:
            listing = await asyncio.to_thread(
                self.api_client.fetch_product, external_id
            )
        except SourcingError as exc:
            logger.warning(
                "API lookup for %s failed: %s",
                external_id,
                exc,
                exc_info=True,
            )
            return None
        if listing is None:
            return None
        return ProductNormalizer.from_listing(listing)
