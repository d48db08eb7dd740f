# file: envhealth/http_client.py

import asyncio
import logging
import ssl
from typing import Any, Dict, Optional

import aiohttp
import certifi

from envhealth.config import HTTP_TIMEOUT_SECONDS
from envhealth.errors import ProviderError


def create_session(timeout: float = HTTP_TIMEOUT_SECONDS) -> aiohttp.ClientSession:
    """Client session trusting the certifi CA bundle, shared by every provider."""
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(ssl=ssl_context),
        timeout=aiohttp.ClientTimeout(total=timeout),
    )


async def fetch_json(session: aiohttp.ClientSession, provider: str, url: str,
                     params: Optional[Dict[str, Any]] = None,
                     headers: Optional[Dict[str, str]] = None) -> Any:
    """GET `url` and decode the JSON body, raising ProviderError on any failure."""
    try:
        async with session.get(url, params=params, headers=headers) as response:
            if response.status != 200:
                body = await response.text()
                logging.warning(f"{provider} returned HTTP {response.status}: {body[:200]}")
                raise ProviderError(provider, f"HTTP {response.status}")
            return await response.json(content_type=None)
    except ProviderError:
        raise
    except asyncio.TimeoutError:
        raise ProviderError(provider, "request timed out")
    except aiohttp.ClientError as e:
        raise ProviderError(provider, f"request failed: {e}")
    except ValueError as e:
        raise ProviderError(provider, f"invalid JSON: {e}")
