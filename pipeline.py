"""
pipeline.py — one product analysis, start to finish.

  image → encode → upload → OCR text → ingredients → scores → alternatives → comparison

Every step is awaited before the next starts; nothing fans out. Cancelling
the analyze() task cancels whatever step is in flight, with no compensation
(an uploaded image stays in the bucket).

Error policy:
  ConfigurationError / InputError  raised before any network call
  ServiceError                     logged with the failing stage, then re-raised
  malformed LLM JSON               absorbed by json_recovery (degrades to defaults)
  ingredient lookup miss           absorbed by scorer (score=None)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar, Union

import image_codec
from comparison import synthesize
from config import PipelineConfig
from errors import InputError, ServiceError
from ingredient_extractor import extract_ingredients
from json_recovery import parse_document
from models import ComparisonResult, ParseOutcome, ProductDescriptor, ScoreReport, StructuredDocument
from providers.base import (
    ALTERNATIVES_PROMPT,
    FULL_TEXT_PROMPT,
    INGREDIENTS_PROMPT,
    TextProvider,
    build_alternatives_request,
)
from result_cache import ResultCache
from score_backends.base import IngredientScoreTable
from scorer import SustainabilityScorer
from storage_backends.base import BlobStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class AnalysisReport:
    image_ref: str
    ocr_text: str
    ingredients: list[str]
    scores: ScoreReport
    comparison: ComparisonResult
    parse_outcome: ParseOutcome

    def to_response(self) -> dict:
        """Payload of a successful POST /analyze-product."""
        return {
            "ingredients":  self.ingredients,
            **self.scores.to_dict(),
            "result":       self.ocr_text,
            "alternatives": [a.to_dict() for a in self.comparison.alternatives],
            "comparison":   self.comparison.to_dict(),
            "parseOutcome": self.parse_outcome.value,
        }


class AnalysisPipeline:

    def __init__(
        self,
        config: PipelineConfig,
        provider: TextProvider,
        score_table: IngredientScoreTable,
        blob_store: Optional[BlobStore] = None,
        cache: Optional[ResultCache] = None,
    ) -> None:
        self.config      = config
        self.provider    = provider
        self.score_table = score_table
        self.blob_store  = blob_store
        self.cache       = cache
        self._scorer     = SustainabilityScorer(score_table)

    @classmethod
    async def create(
        cls,
        config: PipelineConfig,
        cache: Optional[ResultCache] = None,
        seed_csv: Optional[str] = None,
    ) -> "AnalysisPipeline":
        """Build every collaborator from `config`. Raises ConfigurationError first."""
        config.validate()

        from providers.manager import build_provider
        provider = build_provider(config)

        blob_store: Optional[BlobStore] = None
        if config.storage_enabled:
            from storage_backends.supabase_backend import SupabaseBlobStore
            blob_store = SupabaseBlobStore(
                config.supabase_url,
                config.supabase_key,
                bucket=config.storage_bucket,
                size_limit=config.bucket_size_limit,
            )

        if config.score_backend == "sqlite":
            from score_backends.sqlite_backend import SQLiteScoreTable
            table: IngredientScoreTable = SQLiteScoreTable()
            await table.setup(seed_csv)
        else:
            from score_backends.supabase_backend import SupabaseScoreTable
            table = SupabaseScoreTable(
                config.supabase_url, config.supabase_key, table=config.ingredient_table,
            )

        logger.info(
            "Pipeline ready — provider=%s storage=%s scores=%s",
            provider.full_name, blob_store.name if blob_store else "inline data URI", table.name,
        )
        return cls(config, provider, table, blob_store=blob_store, cache=cache)

    # ── Stages ────────────────────────────────────────────────────────────────

    async def _stage(self, stage: str, step: Awaitable[T]) -> T:
        try:
            return await step
        except ServiceError as exc:
            exc.stage = exc.stage or stage
            logger.error("[%s] stage failed: %s", stage, exc)
            raise

    @staticmethod
    def _intake(image: Union[str, bytes, None], mime_type: Optional[str]) -> str:
        if image is None:
            raise InputError("No image provided")
        if not isinstance(image, (str, bytes, bytearray)):
            raise InputError("Image must be a data URI, base64 text or raw bytes")
        if len(image) == 0:
            raise InputError("No image provided")
        if isinstance(image, (bytes, bytearray)):
            return image_codec.encode(bytes(image), mime_type or image_codec.sniff_mime_type(image))
        return image_codec.coerce_data_uri(image)

    async def _upload(self, data: bytes, mime_type: str, data_uri: str) -> str:
        if self.blob_store is None:
            return data_uri
        return await self.blob_store.store(data, mime_type)

    async def _ingredients(self, ocr_text: str, image_ref: str) -> list[str]:
        ingredients = list(extract_ingredients(ocr_text))
        if ingredients:
            return ingredients
        logger.info("No ingredients in OCR text; asking for an ingredients-only read")
        text = await self._stage("ingredients", self.provider.extract(image_ref, INGREDIENTS_PROMPT))
        return list(extract_ingredients(text))

    @staticmethod
    def _describe_original(document: StructuredDocument, scores: ScoreReport, image_ref: str) -> ProductDescriptor:
        described = document.original
        score = scores.average_score if scores.average_score is not None else described.sustainability_score
        return ProductDescriptor(
            name=described.name,
            brand=described.brand,
            price=described.price,
            image=image_ref,
            sustainability_score=score,
            category=described.category,
        )

    # ── Public entry point ────────────────────────────────────────────────────

    async def analyze(
        self,
        image: Union[str, bytes, None],
        mime_type: Optional[str] = None,
    ) -> AnalysisReport:
        """
        Run one analysis. `image` is a data URI, bare base64 (assumed JPEG) or raw
        bytes (MIME type sniffed unless given).
        """
        self.config.validate()
        data_uri = self._intake(image, mime_type)
        data, mime = image_codec.decode(data_uri)
        logger.info("Analyzing %s image (%d bytes)", mime, len(data))

        image_ref = await self._stage("upload", self._upload(data, mime, data_uri))
        ocr_text  = await self._stage("ocr", self.provider.extract(image_ref, FULL_TEXT_PROMPT))

        ingredients = await self._ingredients(ocr_text, image_ref)
        scores      = await self._stage("scoring", self._scorer.score(ingredients))

        alternatives_text = await self._stage(
            "alternatives",
            self.provider.complete(
                ALTERNATIVES_PROMPT,
                build_alternatives_request(ocr_text, ingredients, scores.average_score),
                model=self.config.alternatives_model,
            ),
        )
        document, outcome = parse_document(alternatives_text)
        if outcome is not ParseOutcome.PARSED:
            logger.warning("Alternatives completion was %s", outcome.value)

        original   = self._describe_original(document, scores, image_ref)
        comparison = synthesize(
            original,
            document.alternatives[0],
            document.metrics,
            others=document.alternatives[1:],
        )

        if self.cache is not None:
            self.cache.put(comparison)

        logger.info(
            "Analysis complete — %r scored %s, %d alternative(s)",
            original.name, original.sustainability_score, len(comparison.alternatives),
        )
        return AnalysisReport(
            image_ref=image_ref,
            ocr_text=ocr_text,
            ingredients=ingredients,
            scores=scores,
            comparison=comparison,
            parse_outcome=outcome,
        )
