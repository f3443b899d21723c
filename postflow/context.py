from __future__ import annotations

import logging
from dataclasses import dataclass

from postflow.adapters.clock import SystemClock
from postflow.adapters.local_storage import LocalObjectStorage
from postflow.adapters.sqlite_store import SQLiteDocumentStore
from postflow.components.assets import AssetLifecycleManager
from postflow.components.authoring import AuthoringSession
from postflow.components.cover import CoverImageCoordinator
from postflow.components.notifications import NotificationFanoutWriter
from postflow.components.publish import DraftValidator, PublishOrchestrator
from postflow.components.richtext import ContentConverter
from postflow.core.errors import PersistenceError
from postflow.core.ports import (
    ClockPort,
    DocumentStorePort,
    IdentityPort,
    ObjectStoragePort,
)
from postflow.domain.entities import DraftPost
from postflow.rules.models import PipelineRules

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    store: DocumentStorePort
    storage: ObjectStoragePort
    identity: IdentityPort
    clock: ClockPort
    converter: ContentConverter
    cover: CoverImageCoordinator
    fanout: NotificationFanoutWriter
    orchestrator: PublishOrchestrator
    rules: PipelineRules

    @classmethod
    def create(
        cls,
        db_path: str,
        storage_path: str,
        rules: PipelineRules,
        identity: IdentityPort,
    ) -> PipelineContext:
        # Adapters
        store = SQLiteDocumentStore(db_path)
        storage = LocalObjectStorage(storage_path, rules.storage.public_base_url)
        clock = SystemClock()
        return cls.from_ports(
            store=store, storage=storage, identity=identity, clock=clock, rules=rules
        )

    @classmethod
    def from_ports(
        cls,
        *,
        store: DocumentStorePort,
        storage: ObjectStoragePort,
        identity: IdentityPort,
        clock: ClockPort,
        rules: PipelineRules | None = None,
    ) -> PipelineContext:
        rules = rules or PipelineRules()
        converter = ContentConverter()
        cover = CoverImageCoordinator(storage, rules.storage)
        fanout = NotificationFanoutWriter(store, clock, chunk_size=rules.fanout.chunk_size)
        orchestrator = PublishOrchestrator(
            store=store,
            identity=identity,
            clock=clock,
            cover=cover,
            fanout=fanout,
            validator=DraftValidator(rules.validation, rules.uploads),
            converter=converter,
            rules=rules,
        )
        return cls(
            store=store,
            storage=storage,
            identity=identity,
            clock=clock,
            converter=converter,
            cover=cover,
            fanout=fanout,
            orchestrator=orchestrator,
            rules=rules,
        )

    def new_assets(self) -> AssetLifecycleManager:
        return AssetLifecycleManager(
            self.storage,
            self.clock,
            uploads=self.rules.uploads,
            storage_rules=self.rules.storage,
        )

    def new_session(self) -> AuthoringSession:
        """Session for writing a new post."""
        return self._session(DraftPost())

    async def edit_session(self, post_id: str) -> AuthoringSession:
        """
        Session preloaded with an existing post.

        Raises PersistenceError if the post does not exist.
        """
        post = await self.store.get_post(post_id)
        if post is None:
            raise PersistenceError(f"Post {post_id} not found", code="post_not_found")

        logger.debug("Loaded post %s for editing", post_id)
        return self._session(
            DraftPost(
                title=post.title,
                body=post.content,
                mode="rich",
                tags=list(post.tags),
                cover_url=post.cover_image or None,
                post_id=post.id,
            )
        )

    def _session(self, draft: DraftPost) -> AuthoringSession:
        return AuthoringSession(
            orchestrator=self.orchestrator,
            assets=self.new_assets(),
            identity=self.identity,
            converter=self.converter,
            uploads=self.rules.uploads,
            draft=draft,
        )
