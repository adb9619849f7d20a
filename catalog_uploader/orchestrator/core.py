"""Core orchestrator - wires the services and runs one upload pass."""
import asyncio
import logging
from typing import Optional

from ..config import UploaderConfig
from ..errors import ConfigurationError
from ..models import RunSummary
from ..protocols import ICredentialStore, IIndexSource, IIntegrityChecker, IMediaUploader
from ..services.api_client import HTTPMediaUploader
from ..services.credentials import EnvCredentialStore
from ..services.integrity import FFprobeIntegrityChecker
from ..services.media_paths import classify_path
from ..services.remote_index import HTTPIndexSource, RemoteIndex, load_remote_index
from ..use_cases.deduplication import DedupClassifier
from ..use_cases.file_processing import ProcessFileUseCase
from .change_detector import ChangeDetector
from .file_collector import DirectoryScanner, check_listable
from .parallel_upload import UploadCoordinator, order_candidates
from .progress import ProgressTracker

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Orchestrates an upload run using injected services.

    Everything that can make the run impossible (root, index, integrity
    tool, credentials) is checked before the first file is touched.

    Usage:
        async with UploadOrchestrator(config) as orchestrator:
            summary = await orchestrator.run()

        # With injected collaborators
        async with UploadOrchestrator(
            config,
            index_source=StaticIndexSource(records),
            integrity_checker=checker,
            uploader=uploader,
        ) as orchestrator:
            summary = await orchestrator.run()
    """

    def __init__(
        self,
        config: UploaderConfig,
        index_source: Optional[IIndexSource] = None,
        integrity_checker: Optional[IIntegrityChecker] = None,
        credentials: Optional[ICredentialStore] = None,
        uploader: Optional[IMediaUploader] = None,
        tracker: Optional[ProgressTracker] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            config: Run configuration
            index_source: Remote index source (default: datastore API)
            integrity_checker: Media validator (default: ffprobe)
            credentials: Owner credential lookup (default: environment)
            uploader: Upload client (default: HTTP multipart to api_url)
            tracker: Progress tracker shared with the status display
        """
        self._config = config
        self._index_source = index_source
        self._integrity = integrity_checker
        self._credentials = credentials or EnvCredentialStore()
        self._external_uploader = uploader
        self._tracker = tracker or ProgressTracker()

        # Initialized in __aenter__
        self._index: Optional[RemoteIndex] = None
        self._uploader: Optional[IMediaUploader] = None
        self._http_uploader: Optional[HTTPMediaUploader] = None

    @property
    def tracker(self) -> ProgressTracker:
        return self._tracker

    @property
    def index(self) -> Optional[RemoteIndex]:
        return self._index

    async def __aenter__(self):
        """Validate the environment and build the services."""
        config = self._config
        if config.root is None or not config.root.is_dir():
            raise ConfigurationError(f"root folder is not a readable directory: {config.root}")
        try:
            check_listable(config.root)
        except OSError as e:
            raise ConfigurationError(
                f"root folder is not a readable directory: {config.root} ({e})"
            ) from e

        if self._integrity is None:
            checker = FFprobeIntegrityChecker(config.integrity_command)
            checker.ensure_available()
            self._integrity = checker

        if self._index_source is None:
            if not config.datastore_api_url:
                raise ConfigurationError("DATASTORE_API_URL is not set")
            self._index_source = HTTPIndexSource(
                config.datastore_api_url,
                endpoint=config.index_endpoint,
                verify=config.verify_tls,
            )
        self._index = await load_remote_index(self._index_source)

        if self._external_uploader is not None:
            self._uploader = self._external_uploader
        else:
            if not config.api_url:
                raise ConfigurationError("API_URL is not set")
            self._http_uploader = HTTPMediaUploader(
                config.api_url,
                self._credentials,
                timeout=config.request_timeout,
                verify=config.verify_tls,
            )
            self._uploader = await self._http_uploader.__aenter__()

        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        if self._http_uploader:
            await self._http_uploader.__aexit__(*args)
            self._http_uploader = None

    async def run(self) -> RunSummary:
        """
        Discover, deduplicate and upload every media file below the root.

        Raises:
            ConfigurationError: if an owner that would be used has no credential
        """
        if self._index is None or self._uploader is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")

        config = self._config
        root = config.root
        detector = ChangeDetector(root, config.snapshot_path)
        priority, tree = await asyncio.to_thread(detector.detect)

        scan = await asyncio.to_thread(DirectoryScanner(root).scan)
        candidates = order_candidates(priority, scan.files)
        priority_count = len(set(priority) & set(candidates))

        owners = {classify_path(path, root, config.accepted_users).owner for path in candidates}
        self._credentials.require(owners)

        await self._tracker.set_total(len(candidates))
        await self._tracker.set_retrieved_from_index(self._index.fingerprint_count)

        classifier = DedupClassifier(self._index, self._integrity)
        process_file = ProcessFileUseCase(root, config.accepted_users, classifier, self._uploader)
        coordinator = UploadCoordinator(process_file.execute, self._tracker, config.concurrency)
        await coordinator.run(candidates)

        try:
            await asyncio.to_thread(detector.persist, tree)
        except (OSError, RecursionError) as e:
            logger.error("Failed to save snapshot %s: %s", detector.snapshot_path, e)

        snapshot = await self._tracker.snapshot()
        return RunSummary(
            total_files=len(candidates),
            priority_files=priority_count,
            uploaded=snapshot.uploaded,
            skipped=snapshot.skipped,
            corrupt=snapshot.corrupt,
            failed=snapshot.failed,
            scan_errors=tuple((path, str(error)) for path, error in scan.errors),
        )
