"""
Document Pipeline Module.

The four operations exposed to callers:

    process_single        one file → ExtractionResult
    process_comparison    2..N offers → ComparisonReport        (fail-fast)
    process_registration  1..N offers → RegistrationResult      (fail-fast)
    verify                N files + checklist ids → VerificationBatchResult
                          (per-document failures are contained)

Every flow shares the same front half: validate the file against its
document type, extract text, build the prompt, call the model, parse the
reply and score it. Files in a batch are processed one at a time in
input order, so result positions always match input positions.

Usage:
    from document_parser.pipeline import DocumentPipeline
    from document_parser.input_handler import ExtractionJob

    pipeline = DocumentPipeline.from_config()
    result = pipeline.process_single(ExtractionJob.from_path("invoice.pdf", "invoice"))
    print(result.to_json())

Author: ML Engineering Team
"""

import time
from typing import Any, Dict, List, Optional, Tuple

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.helpers import elapsed_ms
from document_parser.utils.exceptions import (
    DocumentParserError,
    InvalidResponseFormatError,
    PersistenceError,
    PromptNotFoundError,
    UnsupportedDocumentTypeError,
    ValidationError,
)
from document_parser.registry import ChecklistRegistry, DocumentTypeDefinition, DocumentTypeRegistry
from document_parser.input_handler import ExtractedText, ExtractionJob, TextExtractor, UploadStorage
from document_parser.model_inference import ExtractionResult, ModelGateway, OpenAIGateway
from document_parser.postprocessor import ConfidenceScorer, RecordValidator, parse_reply
from document_parser.aggregation import (
    ComparisonReport,
    OfferComparator,
    PersistenceOutcome,
    RegistrationResult,
    TenorCalculator,
)
from document_parser.evaluation import VerificationBatchResult, VerificationEvaluator
from document_parser.output_handler import LoanOfferStore

logger = get_logger(__name__)

FILE_NAME_KEY = "fileName"


class DocumentPipeline:
    """
    Orchestrates extraction, model calls and post-processing.

    All collaborators are injected; ``from_config()`` wires the
    production ones. The registry and checklist tables are only read
    here, so one pipeline can serve concurrent callers.

    Attributes:
        registry: Document type definitions and templates.
        checklists: Verification checklists and templates.
        gateway: Model gateway.
        extractor: File → text dispatcher.
        storage: Temporary upload storage, used when staging is enabled.

    Example:
        >>> pipeline = DocumentPipeline(registry, checklists, gateway)
        >>> report = pipeline.process_comparison(jobs, "angebotsvergleich")
        >>> report.comparison.best_for("effektivzinssatz").offer_id
        'offer_1'
    """

    def __init__(
        self,
        registry: DocumentTypeRegistry,
        checklists: ChecklistRegistry,
        gateway: ModelGateway,
        extractor: Optional[TextExtractor] = None,
        scorer: Optional[ConfidenceScorer] = None,
        validator: Optional[RecordValidator] = None,
        comparator: Optional[OfferComparator] = None,
        tenor: Optional[TenorCalculator] = None,
        evaluator: Optional[VerificationEvaluator] = None,
        store: Optional[LoanOfferStore] = None,
        storage: Optional[UploadStorage] = None,
        stage_uploads: Optional[bool] = None
    ) -> None:
        self.registry = registry
        self.checklists = checklists
        self.gateway = gateway
        self.extractor = extractor or TextExtractor()
        self.scorer = scorer or ConfidenceScorer(registry)
        self.validator = validator or RecordValidator()
        self.comparator = comparator or OfferComparator()
        self.tenor = tenor or TenorCalculator()
        self.evaluator = evaluator or VerificationEvaluator(gateway, checklists)
        self.storage = storage or UploadStorage()
        self.stage_uploads = (
            stage_uploads if stage_uploads is not None
            else get_config("storage.stage_uploads", True)
        )
        self.verification_type = get_config("verification.document_type", "document_verification")
        self._store = store

        logger.info(
            f"DocumentPipeline initialized ({len(registry)} document types, "
            f"{len(checklists.supported_types())} checklists, model={gateway.model})"
        )

    @classmethod
    def from_config(
        cls,
        gateway: Optional[ModelGateway] = None,
        store: Optional[LoanOfferStore] = None
    ) -> 'DocumentPipeline':
        """Build a pipeline from settings.yaml and the JSON registries."""
        return cls(
            registry=DocumentTypeRegistry.from_config(),
            checklists=ChecklistRegistry.from_config(),
            gateway=gateway or OpenAIGateway(),
            store=store,
        )

    @property
    def store(self) -> LoanOfferStore:
        """Persistence collaborator, opened on first registration."""
        if self._store is None:
            self._store = LoanOfferStore()
        return self._store

    # =========================================================================
    # SHARED STEPS
    # =========================================================================

    def _extract(self, job: ExtractionJob) -> ExtractedText:
        if not self.stage_uploads:
            return self.extractor.extract(job.data, job.extension)

        with self.storage.staged(job.data, job.file_name) as path:
            return self.extractor.extract_file(path, job.extension)

    def _prompt_template(self, definition: DocumentTypeDefinition) -> str:
        template = self.registry.get_prompt_template(definition.id)
        if not template:
            raise PromptNotFoundError(definition.id, definition.prompt_template or None)
        return template

    def _extract_record(
        self,
        job: ExtractionJob,
        definition: DocumentTypeDefinition
    ) -> Tuple[Dict[str, Any], float, List[str]]:
        """
        Run one validated file through extraction, model and scoring.

        Returns:
            ``(record, confidence, warnings)``
        """
        template = self._prompt_template(definition)
        extracted = self._extract(job)

        reply = self.gateway.process(extracted.text, template, definition.id)
        record = parse_reply(reply)

        validation = self.validator.validate(record, definition.required_fields)
        if not validation.is_valid:
            raise InvalidResponseFormatError("; ".join(validation.errors))
        for warning in validation.warnings:
            logger.debug(f"{job.file_name}: {warning}")

        confidence = self.scorer.score(record, definition.id)
        logger.info(f"Extracted {len(record)} fields from {job.file_name} (confidence={confidence:.2f})")
        return record, confidence, extracted.warnings + validation.warnings

    def _validate_batch(
        self,
        jobs: List[ExtractionJob],
        document_type_id: str,
        operation: str
    ) -> DocumentTypeDefinition:
        definition = self.registry.require(document_type_id)
        if not definition.is_multi_file:
            raise UnsupportedDocumentTypeError(document_type_id, operation)
        if operation == "comparison" and not definition.comparison_prompt_template:
            raise UnsupportedDocumentTypeError(document_type_id, operation)
        self.registry.validate_file_count(document_type_id, len(jobs))
        for job in jobs:
            self.registry.validate_file(job.file_name, job.size, document_type_id)
        return definition

    def _extract_batch(
        self,
        jobs: List[ExtractionJob],
        definition: DocumentTypeDefinition
    ) -> Tuple[List[Dict[str, Any]], List[float]]:
        records, confidences = [], []
        for index, job in enumerate(jobs, 1):
            logger.info(f"Processing file {index}/{len(jobs)}: {job.file_name}")
            record, confidence, _ = self._extract_record(job, definition)
            record = dict(record)
            record[FILE_NAME_KEY] = job.file_name
            records.append(record)
            confidences.append(confidence)
        return records, confidences

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def process_single(self, job: ExtractionJob) -> ExtractionResult:
        """
        Extract structured data from one document.

        Raises:
            DocumentParserError: Any validation, extraction, model or
                parse failure.
        """
        start = time.perf_counter()
        self.registry.validate_file(job.file_name, job.size, job.document_type_id)
        definition = self.registry.require(job.document_type_id)

        record, confidence, warnings = self._extract_record(job, definition)

        return ExtractionResult(
            extracted_data=record,
            confidence=confidence,
            processing_time_ms=elapsed_ms(start),
            document_type=definition.id,
            file_name=job.file_name,
            warnings=warnings,
        )

    def process_comparison(self, jobs: List[ExtractionJob], document_type_id: str) -> ComparisonReport:
        """
        Extract several offers and compare them.

        All files are validated before the first model call; the first
        failing file aborts the batch.
        """
        start = time.perf_counter()
        definition = self._validate_batch(jobs, document_type_id, "comparison")

        template = self.registry.get_comparison_prompt_template(document_type_id)
        if not template:
            raise PromptNotFoundError(document_type_id, definition.comparison_prompt_template)

        records, confidences = self._extract_batch(jobs, definition)

        combined = self.comparator.build_combined_text(records)
        reply = self.gateway.process(combined, template, f"{document_type_id} comparison")
        comparison = self.comparator.build_result(
            records, parse_reply(reply), definition.comparison_rules
        )

        return ComparisonReport(
            individual_offers=records,
            comparison=comparison,
            document_type=document_type_id,
            processing_time_ms=elapsed_ms(start),
            confidences=confidences,
        )

    def process_registration(self, jobs: List[ExtractionJob], document_type_id: str) -> RegistrationResult:
        """
        Extract offers, derive the fixed-rate tenor and persist them.

        Extraction failures abort the batch; persistence failures are
        reported in ``persistence`` instead.
        """
        start = time.perf_counter()
        definition = self._validate_batch(jobs, document_type_id, "registration")

        records, confidences = self._extract_batch(jobs, definition)
        offers = [self.tenor.enrich(record) for record in records]

        processing_time_ms = elapsed_ms(start)
        try:
            outcome = self.store.save(offers, processing_time_ms, confidences)
        except (PersistenceError, OSError) as e:
            outcome = PersistenceOutcome(False, 0, len(offers), str(e))
        if not outcome.success:
            logger.error(
                f"Persisted {outcome.saved_count}/{outcome.requested_count} offers: {outcome.error}"
            )

        average = round(sum(confidences) / len(confidences), 4) if confidences else 0.0
        return RegistrationResult(
            individual_offers=offers,
            document_type=document_type_id,
            processing_time_ms=processing_time_ms,
            confidence=average,
            persistence=outcome,
            confidences=confidences,
        )

    def verify(self, jobs: List[ExtractionJob], document_type_ids: List[str]) -> VerificationBatchResult:
        """
        Verify each document against its checklist.

        Request-level problems (no files, mismatched lists, oversized or
        unsupported files, unknown checklists) fail before any model
        call. After that, a failing document yields an all-failed result
        and the batch continues.
        """
        start = time.perf_counter()
        if not jobs:
            raise ValidationError("No files uploaded")
        if len(jobs) != len(document_type_ids):
            raise ValidationError(
                "Each file needs exactly one document type",
                {"files": len(jobs), "document_types": len(document_type_ids)}
            )

        if self.registry.exists(self.verification_type):
            self.registry.validate_file_count(self.verification_type, len(jobs))
            for job in jobs:
                self.registry.validate_file(job.file_name, job.size, self.verification_type)
        for document_type_id in document_type_ids:
            self.checklists.require(document_type_id)

        documents = []
        for index, (job, document_type_id) in enumerate(zip(jobs, document_type_ids), 1):
            logger.info(f"Verifying file {index}/{len(jobs)}: {job.file_name} as {document_type_id}")
            document_start = time.perf_counter()
            try:
                extracted = self._extract(job)
                result = self.evaluator.evaluate(extracted.text, document_type_id, job.file_name)
                result.processing_time_ms = elapsed_ms(document_start)
            except DocumentParserError as e:
                logger.error(f"Verification of {job.file_name} failed: {e.message}")
                result = self.evaluator.failed_result(
                    document_type_id, job.file_name, e, elapsed_ms(document_start)
                )
            documents.append(result)

        return VerificationBatchResult(documents=documents, total_processing_time_ms=elapsed_ms(start))
