from __future__ import annotations


class StickerBotError(Exception):
    retryable = False


class ValidationError(StickerBotError):
    """Rejected input; nothing was mutated."""


class TransientExternalError(StickerBotError):
    retryable = True


class CapacityRaceError(TransientExternalError):
    """The target volume filled up between the lookup and the append."""


class ContainerNotFoundError(StickerBotError):
    pass


class BotBlockedError(StickerBotError):
    pass


class IngestionError(StickerBotError):
    def __init__(
        self,
        step: str,
        owner_id: int,
        cause: BaseException,
        *,
        shard_name: str | None = None,
    ) -> None:
        self.step = step
        self.owner_id = owner_id
        self.shard_name = shard_name
        self.cause = cause
        super().__init__(
            f"ingestion failed at {step} (owner={owner_id} shard={shard_name or '-'}): {cause}"
        )

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return bool(getattr(self.cause, "retryable", False))
