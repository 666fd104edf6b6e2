"""文件服务客户端：消费外部文件列表 / 内容接口

接口约定：
- GET /api/fs/list?path=    -> {"ok", "path", "entries": [{name, entry_type, size, mtime}]}
- GET /api/fs/content?path= -> {"ok", "path", "content"}
- GET /api/fs/raw?path=     -> 原始文件流
"""

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from .. import config
from ..errors import FileServiceError
from ..telemetry import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FileEntry:
    """目录项"""

    name: str
    entry_type: str  # "dir" | "file"
    size: int = 0
    mtime: int = 0

    @property
    def is_dir(self) -> bool:
        return self.entry_type == "dir"


class FileServiceClient:
    """文件服务 HTTP 客户端"""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = config.FILE_SERVICE_TIMEOUT,
    ):
        self.base_url = (base_url or config.FILE_SERVICE_URL).rstrip("/")
        self._timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """获取或创建 HTTP 客户端"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _get_json(self, endpoint: str, path: str) -> dict:
        client = await self._get_client()
        try:
            response = await client.get(endpoint, params={"path": path})
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise FileServiceError(f"timeout on {endpoint} {path!r}") from e
        except httpx.HTTPStatusError as e:
            raise FileServiceError(f"{endpoint} {path!r}: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise FileServiceError(f"{endpoint} {path!r}: {e}") from e

        if not isinstance(data, dict):
            raise FileServiceError(f"{endpoint} {path!r}: unexpected response")
        if not data.get("ok", False):
            raise FileServiceError(f"{endpoint} {path!r}: {data.get('error', 'request failed')}")
        return data

    async def list_dir(self, path: str = "") -> list[FileEntry]:
        """列出目录（目录在前，按名称排序）"""
        data = await self._get_json("/api/fs/list", path)
        try:
            entries = [
                FileEntry(
                    name=str(item.get("name", "")),
                    entry_type=item.get("entry_type", "file"),
                    size=int(item.get("size", 0)),
                    mtime=int(item.get("mtime", 0)),
                )
                for item in data.get("entries", [])
            ]
        except (AttributeError, TypeError, ValueError) as e:
            raise FileServiceError(f"/api/fs/list {path!r}: malformed entry: {e}") from e
        entries.sort(key=lambda e: (not e.is_dir, e.name.lower()))
        logger.debug(f"[FileService] list {path!r}: {len(entries)} entries")
        return entries

    async def read_text(self, path: str) -> str:
        """读取文本文件内容"""
        data = await self._get_json("/api/fs/content", path)
        return data.get("content", "")

    def raw_url(self, path: str) -> str:
        """原始文件 URL（图片、PDF 等由浏览器直接加载）"""
        return f"{self.base_url}/api/fs/raw?{urlencode({'path': path})}"
