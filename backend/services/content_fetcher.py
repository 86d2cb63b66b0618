"""Repository content fetcher backed by the GitHub contents API."""
import base64
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional
from urllib.parse import quote
import httpx

from models.repository import EntryKind, FileEntry, SourceFile
from config import GITHUB_TOKEN, GITHUB_API_URL, FETCH_MAX_CONCURRENCY

logger = logging.getLogger(__name__)


class ContentFetchError(Exception):
    """Source-hosting API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RateLimitedError(ContentFetchError):
    """The API kept rejecting requests for rate-limit reasons after all retries."""


class UnauthorizedError(ContentFetchError):
    """Token missing, invalid or lacking access to the repository."""


class RepositoryNotFoundError(ContentFetchError):
    """Repository or path does not exist (or is private and not visible)."""


class GitHubContentFetcher:
    """Lists repository entries and fetches decoded file text."""

    def __init__(
        self,
        token: Optional[str] = GITHUB_TOKEN,
        api_url: str = GITHUB_API_URL,
        max_retries: int = 4,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30.0,
        max_workers: int = FETCH_MAX_CONCURRENCY,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Initialize the fetcher with one reusable HTTP client.

        Args:
            token: GitHub token; anonymous access works with a much lower rate limit
            api_url: Base URL of the GitHub REST API
            max_retries: Attempts per request for rate-limit and transient failures
            initial_delay: First backoff delay in seconds
            max_delay: Upper bound for any single backoff delay
            timeout: Request timeout in seconds
            max_workers: Concurrent file downloads in fetch_source_files
            http_client: Pre-built client (tests inject one with a mock transport)
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.api_url = api_url.rstrip("/")
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.max_workers = max(1, max_workers)

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "talktocode-ingestor",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("GITHUB_TOKEN not set, using unauthenticated GitHub API access")

        self.client = http_client or httpx.Client(timeout=timeout)
        self.client.headers.update(headers)

        logger.info(f"Initialized GitHubContentFetcher for {self.api_url}")

    def close(self) -> None:
        self.client.close()

    def list_entries(self, owner: str, repo: str, path: str = "") -> List[FileEntry]:
        """
        List one directory level of a repository.

        Args:
            owner: Repository owner (user or organisation)
            repo: Repository name
            path: Directory path, "" for the repository root

        Returns:
            File and directory entries; other kinds (symlink, submodule) are dropped

        Raises:
            ContentFetchError: If the listing cannot be fetched
        """
        self._check_locator(owner, repo)

        data = self._get(self._contents_url(owner, repo, path)).json()
        if not isinstance(data, list):
            # The API returns a single object when path points at a file
            data = [data]

        entries = []
        for item in data:
            try:
                kind = EntryKind(item.get("type"))
            except ValueError:
                logger.debug(f"Skipping {item.get('type')} entry {item.get('path')}")
                continue
            entries.append(FileEntry(
                path=item["path"],
                kind=kind,
                content_id=item["sha"],
                name=item.get("name", ""),
                size=item.get("size")
            ))

        logger.debug(f"Listed {len(entries)} entries in {owner}/{repo}/{path}")
        return entries

    def list_files(self, owner: str, repo: str, recursive: bool = False) -> List[FileEntry]:
        """
        Collect file entries of a repository.

        Only the root level is read unless recursive is set; directories
        below the root are otherwise ignored.
        """
        files: List[FileEntry] = []
        pending = [""]
        while pending:
            path = pending.pop(0)
            for entry in self.list_entries(owner, repo, path):
                if entry.is_file:
                    files.append(entry)
                elif recursive:
                    pending.append(entry.path)
        return files

    def get_file_text(self, owner: str, repo: str, path: str) -> str:
        """
        Fetch and decode the text of one file.

        Args:
            owner: Repository owner
            repo: Repository name
            path: Repository-relative file path

        Returns:
            File content decoded as UTF-8

        Raises:
            ValueError: If path is empty
            ContentFetchError: If the file cannot be fetched or is not text
        """
        self._check_locator(owner, repo)
        if not path or not path.strip():
            raise ValueError("File path cannot be empty")

        url = self._contents_url(owner, repo, path)
        data = self._get(url).json()

        if not isinstance(data, dict) or data.get("type") != "file":
            raise ContentFetchError(f"{path} is not a file")

        if data.get("encoding") == "base64" and data.get("content") is not None:
            raw = base64.b64decode(data["content"])
        else:
            # Files over 1 MB come back without inline content
            response = self._get(url, accept="application/vnd.github.raw")
            raw = response.content

        return self._decode(raw, path)

    def fetch_source_files(
        self,
        owner: str,
        repo: str,
        entries: List[FileEntry]
    ) -> List[SourceFile]:
        """
        Download the given file entries concurrently.

        A file that fails to download or decode is logged and left out;
        the returned list keeps the order of entries.
        """
        files = [entry for entry in entries if entry.is_file]
        if not files:
            return []

        slots: List[Optional[SourceFile]] = [None] * len(files)

        def fetch_one(position: int, entry: FileEntry) -> None:
            try:
                text = self.get_file_text(owner, repo, entry.path)
            except ContentFetchError as e:
                log = logger.error if isinstance(e, (RateLimitedError, UnauthorizedError)) else logger.warning
                log(
                    f"Skipping {entry.path}: {e}",
                    extra={"extra": {"path": entry.path, "content_id": entry.content_id, "status": e.status_code}}
                )
                return
            except ValueError as e:
                # Includes malformed JSON bodies
                logger.warning(
                    f"Skipping {entry.path}: {e}",
                    extra={"extra": {"path": entry.path, "content_id": entry.content_id}}
                )
                return
            except Exception as e:
                logger.error(
                    f"Skipping {entry.path} after unexpected error: {e}",
                    exc_info=True,
                    extra={"extra": {"path": entry.path, "content_id": entry.content_id}}
                )
                return
            slots[position] = SourceFile(content_id=entry.content_id, path=entry.path, raw_text=text)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(files))) as executor:
            futures = [executor.submit(fetch_one, i, entry) for i, entry in enumerate(files)]
            for future in futures:
                future.result()

        fetched = [source for source in slots if source is not None]
        logger.info(f"Fetched {len(fetched)}/{len(files)} files from {owner}/{repo}")
        return fetched

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        return f"{self.api_url}/repos/{quote(owner)}/{quote(repo)}/contents/{quote(path.strip('/'))}"

    @staticmethod
    def _check_locator(owner: str, repo: str) -> None:
        if not owner or not owner.strip():
            raise ValueError("Repository owner cannot be empty")
        if not repo or not repo.strip():
            raise ValueError("Repository name cannot be empty")

    @staticmethod
    def _decode(raw: bytes, path: str) -> str:
        if b"\x00" in raw:
            raise ContentFetchError(f"{path} looks like a binary file")
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise ContentFetchError(f"{path} is not valid UTF-8 text")

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code != 403:
            return False
        # Secondary limits keep x-ratelimit-remaining above zero
        if response.headers.get("x-ratelimit-remaining") == "0" or "retry-after" in response.headers:
            return True
        return "rate limit" in response.text.lower()

    def _retry_delay(self, response: httpx.Response, delay: float) -> float:
        """Backoff delay, preferring the server's own hint when it sends one."""
        retry_after = response.headers.get("retry-after")
        if retry_after and retry_after.isdigit():
            return min(float(retry_after), self.max_delay)

        reset = response.headers.get("x-ratelimit-reset")
        if reset and reset.isdigit():
            wait = float(reset) - time.time()
            if wait > 0:
                return min(wait, self.max_delay)

        return delay

    def _get(self, url: str, accept: Optional[str] = None) -> httpx.Response:
        """
        GET with exponential backoff on rate limiting and transient failures.

        Raises:
            RateLimitedError: If every attempt was rate limited
            UnauthorizedError: On 401, or 403 without rate-limit exhaustion
            RepositoryNotFoundError: On 404
            ContentFetchError: On any other failure after all retries
        """
        headers: Dict[str, str] = {"Accept": accept} if accept else {}
        delay = self.initial_delay
        last_error = None
        rate_limited = False

        for attempt in range(self.max_retries):
            try:
                response = self.client.get(url, headers=headers)
            except httpx.TimeoutException:
                last_error = "Request timeout"
                rate_limited = False
                logger.warning(f"{last_error} for {url} on attempt {attempt + 1}/{self.max_retries}")
                wait = delay
            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                rate_limited = False
                logger.warning(f"{last_error} for {url} on attempt {attempt + 1}/{self.max_retries}")
                wait = delay
            else:
                if self._is_rate_limited(response):
                    last_error = f"Rate limited (HTTP {response.status_code})"
                    rate_limited = True
                    wait = self._retry_delay(response, delay)
                    logger.warning(
                        f"GitHub rate limit hit on attempt {attempt + 1}/{self.max_retries}, "
                        f"retrying in {wait:.1f}s"
                    )
                elif response.status_code >= 500:
                    last_error = f"Server error (HTTP {response.status_code})"
                    rate_limited = False
                    wait = delay
                    logger.warning(f"{last_error} for {url} on attempt {attempt + 1}/{self.max_retries}")
                elif response.status_code == 401 or response.status_code == 403:
                    logger.error(f"GitHub rejected credentials for {url} (HTTP {response.status_code})")
                    raise UnauthorizedError("Unauthorized to access repository", response.status_code)
                elif response.status_code == 404:
                    raise RepositoryNotFoundError(f"Not found: {url}", 404)
                elif response.status_code != 200:
                    error_msg = f"GitHub request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise ContentFetchError(error_msg, response.status_code)
                else:
                    return response

            if attempt < self.max_retries - 1:
                time.sleep(wait)
                delay = min(delay * 2, self.max_delay)

        error_msg = f"GitHub request failed after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        if rate_limited:
            raise RateLimitedError(error_msg, 429)
        raise ContentFetchError(error_msg)
