"""
Publish component - turns a validated draft into a persisted post.

Runs the publish as an ordered set of awaited steps:

    VALIDATING -> RECONCILING_ASSETS -> PERSISTING -> UPLOADING_COVER
    -> FANNING_OUT (create only) -> DONE

and FAILED from any state.

Invariants:
- I1: No side effect runs before validation passes
- I2: Cover upload and fan-out only run once the post document exists
- I3: Validation, conversion and persistence failures are fatal
- I4: Cover upload, purge and fan-out failures are warnings on a successful result
- I5: Fan-out runs for newly created posts only
"""

from __future__ import annotations

import asyncio
import logging

from postflow.components.assets import AssetLifecycleManager, PurgeReport
from postflow.components.cover import CoverImageCoordinator
from postflow.components.notifications import FanoutReport, NotificationFanoutWriter
from postflow.components.richtext import ContentConverter, to_canonical
from postflow.core.errors import (
    FanoutError,
    FieldError,
    PersistenceError,
    PipelineError,
    UploadError,
    ValidationError,
)
from postflow.core.ports.store import DocumentStoreError
from postflow.domain.entities import (
    DraftPost,
    IdentitySnapshot,
    PostDocument,
    PublishedPost,
    PublishMode,
)
from postflow.rules.models import PipelineRules

from .models import PublishResult, PublishState, PublishWarning
from .ports import (
    ClockPort,
    ConverterPort,
    DocumentStorePort,
    IdentityPort,
    ValidationPort,
)
from .search import search_terms
from .validation import DraftValidator

logger = logging.getLogger(__name__)

PUBLISH_MODES = ("create", "edit")


class PublishOrchestrator:
    """Coordinates validation, asset cleanup, persistence, cover upload and fan-out."""

    def __init__(
        self,
        *,
        store: DocumentStorePort,
        identity: IdentityPort,
        clock: ClockPort,
        cover: CoverImageCoordinator,
        fanout: NotificationFanoutWriter,
        validator: ValidationPort | None = None,
        converter: ConverterPort | None = None,
        rules: PipelineRules | None = None,
    ) -> None:
        self._rules = rules or PipelineRules()
        self._store = store
        self._identity = identity
        self._clock = clock
        self._cover = cover
        self._fanout = fanout
        self._validator = validator or DraftValidator(self._rules.validation, self._rules.uploads)
        self._converter = converter or ContentConverter()
        # Strong references so background fan-outs are not garbage collected
        self._background: set[asyncio.Task[FanoutReport | None]] = set()

    async def publish(
        self,
        draft: DraftPost,
        mode: PublishMode,
        assets: AssetLifecycleManager | None = None,
    ) -> PublishResult:
        """
        Publish a draft as a new post or as an update of an existing one.

        Args:
            draft: Authoring state to publish.
            mode: "create" for a new post, "edit" to replace draft.post_id.
            assets: Session upload tracker; orphans are purged when given.

        Returns:
            PublishResult with the stored post and any non-fatal warnings.

        Raises:
            ValidationError: Draft or author failed checks; nothing was written.
            ConversionError: Body could not be made canonical; nothing was written.
            PersistenceError: Post could not be stored; no cover or fan-out ran.
        """
        if mode not in PUBLISH_MODES:
            raise ValueError(f"Unknown publish mode: {mode!r}")

        states: list[PublishState] = []
        warnings: list[PublishWarning] = []

        def enter(state: PublishState) -> None:
            states.append(state)
            logger.debug("Publish (%s) entering %s", mode, state.value)

        try:
            enter(PublishState.VALIDATING)
            author = self._validate(draft, mode)

            enter(PublishState.RECONCILING_ASSETS)
            content = await to_canonical(draft.body, draft.mode, self._converter)
            purge = await self._purge_orphans(assets, content, warnings)

            enter(PublishState.PERSISTING)
            post = await self._persist(draft, mode, content, author)

            if draft.cover_file is not None:
                enter(PublishState.UPLOADING_COVER)
                post = await self._upload_cover(draft, post, warnings)

            fanout_task = None
            if mode == "create":
                enter(PublishState.FANNING_OUT)
                fanout_task = await self._start_fanout(post, author, warnings)

            enter(PublishState.DONE)
        except PipelineError as e:
            states.append(PublishState.FAILED)
            e.states = list(states)
            logger.warning("Publish (%s) failed in %s: %s", mode, states[-2].value, e)
            raise

        logger.info(
            "Post %s published (%s) with %d warning(s)", post.id, mode, len(warnings)
        )
        return PublishResult(
            post=post,
            mode=mode,
            warnings=warnings,
            states=states,
            purge=purge,
            fanout=fanout_task,
        )

    # --- Steps ---

    def _validate(self, draft: DraftPost, mode: PublishMode) -> IdentitySnapshot:
        errors: list[FieldError] = []

        if mode == "create" and draft.post_id:
            errors.append(
                FieldError(
                    code="unexpected_post_id",
                    message="A new post cannot carry an existing post id",
                    field="post_id",
                )
            )
        elif mode == "edit" and not draft.post_id:
            errors.append(
                FieldError(code="required", message="Editing needs a post id", field="post_id")
            )

        author = self._identity.current_user()
        if author is None or not author.user_id:
            errors.append(
                FieldError(
                    code="not_authenticated", message="User not authenticated", field="author"
                )
            )

        errors.extend(self._validator.validate(draft, mode))
        if errors:
            raise ValidationError(errors)

        assert author is not None
        return author

    async def _purge_orphans(
        self,
        assets: AssetLifecycleManager | None,
        content: str,
        warnings: list[PublishWarning],
    ) -> PurgeReport:
        if assets is None:
            return PurgeReport()

        orphans = assets.reconcile(content, "rich")
        if not orphans:
            return PurgeReport()

        report = await assets.purge(orphans)
        for failure in report.failures:
            warnings.append(
                PublishWarning(
                    code=failure.code,
                    message=failure.message,
                    state=PublishState.RECONCILING_ASSETS,
                    ref=failure.ref,
                )
            )
        return report

    async def _persist(
        self,
        draft: DraftPost,
        mode: PublishMode,
        content: str,
        author: IdentitySnapshot,
    ) -> PublishedPost:
        now = self._clock.now()
        tags = [t.strip() for t in draft.tags if t.strip()]
        fields = {
            "title": draft.title,
            "content": content,
            "tags": tags,
            "tags_lower": [t.lower() for t in tags],
            "title_for_search": search_terms(draft.title, author),
            "author_id": author.user_id,
            "author_name": author.name,
            "author_username": author.username,
            "author_avatar": author.avatar,
            "updated_at": now,
        }

        try:
            if mode == "create":
                doc = PostDocument(**fields, cover_image=draft.cover_url or "", created_at=now)
                post_id = await self._store.create_post(doc)
                logger.info("Post %s created", post_id)
                return PublishedPost(id=post_id, **doc.model_dump())

            assert draft.post_id is not None
            prior = await self._store.get_post(draft.post_id)
            if prior is None:
                raise PersistenceError(f"Post {draft.post_id} not found", code="post_not_found")

            doc = PostDocument(
                **fields,
                cover_image=prior.cover_image,
                created_at=prior.created_at,
                total_reads=prior.total_reads,
                likes=prior.likes,
                bookmarks=prior.bookmarks,
            )
            await self._store.update_post(draft.post_id, doc)
            logger.info("Post %s updated", draft.post_id)
            return PublishedPost(id=draft.post_id, **doc.model_dump())
        except DocumentStoreError as e:
            raise PersistenceError(f"Could not save post: {e}") from e

    async def _upload_cover(
        self,
        draft: DraftPost,
        post: PublishedPost,
        warnings: list[PublishWarning],
    ) -> PublishedPost:
        assert draft.cover_file is not None
        try:
            url = await self._cover.upload(draft.cover_file, post.id)
            updated = post.model_copy(update={"cover_image": url})
            await self._store.update_post(post.id, updated.document())
        except (UploadError, DocumentStoreError) as e:
            logger.warning("Post %s saved without its new cover: %s", post.id, e)
            warnings.append(
                PublishWarning(
                    code="cover_upload_failed",
                    message=str(e),
                    state=PublishState.UPLOADING_COVER,
                )
            )
            return post
        return updated

    async def _start_fanout(
        self,
        post: PublishedPost,
        author: IdentitySnapshot,
        warnings: list[PublishWarning],
    ) -> asyncio.Task[FanoutReport | None] | None:
        if self._rules.fanout.mode == "await":
            await self._notify_followers(post, author, warnings)
            return None

        task = asyncio.create_task(
            self._notify_followers(post, author, warnings), name=f"fanout-{post.id}"
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _notify_followers(
        self,
        post: PublishedPost,
        author: IdentitySnapshot,
        warnings: list[PublishWarning],
    ) -> FanoutReport | None:
        try:
            return await self._fanout.fan_out(self._identity.follower_ids(), post, author)
        except (FanoutError, DocumentStoreError, OSError) as e:
            logger.warning("Follower notification for post %s incomplete: %s", post.id, e)
            self._fanout_warning(warnings, e)
            return getattr(e, "report", None)
        except Exception as e:
            # Post is stored; any follower lookup or fan-out failure is a warning
            logger.exception("Follower notification for post %s failed", post.id)
            self._fanout_warning(warnings, e)
            return None

    @staticmethod
    def _fanout_warning(warnings: list[PublishWarning], error: Exception) -> None:
        warnings.append(
            PublishWarning(
                code="fanout_failed",
                message=str(error) or type(error).__name__,
                state=PublishState.FANNING_OUT,
            )
        )
