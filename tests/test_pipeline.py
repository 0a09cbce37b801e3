"""End-to-end tests for DocumentPipeline with a scripted gateway."""

import json

import pytest

from document_parser.input_handler import ExtractionJob, UploadStorage
from document_parser.model_inference import GatewayOutcome, ReplyStatus
from document_parser.output_handler import LoanOfferStore, database_handler
from document_parser.pipeline import DocumentPipeline
from document_parser.utils.exceptions import (
    ChecklistNotFoundError,
    FileTooLargeError,
    InvalidResponseFormatError,
    ModelAuthError,
    PromptNotFoundError,
    UnsupportedDocumentTypeError,
    UnsupportedFormatError,
    ValidationError,
)

INVOICE_REPLY = '{"vendorName":"Acme","invoiceNumber":"123","invoiceDate":null,"totalAmount":450}'


def _offer_reply(anbieter, kreditbetrag, effektivzinssatz, **extra):
    record = {
        "anbieter": anbieter,
        "kreditbetrag": kreditbetrag,
        "sollzinssatz": "3,0 %",
        "effektivzinssatz": effektivzinssatz,
    }
    record.update(extra)
    return "```json\n" + json.dumps(record, ensure_ascii=False) + "\n```"


@pytest.fixture
def make_pipeline(registry, checklists, gateway_factory, tmp_path):
    """Pipeline over the fixture registries with staged uploads in tmp_path."""
    def make(replies, store=None):
        gateway = gateway_factory(replies)
        pipeline = DocumentPipeline(
            registry,
            checklists,
            gateway,
            store=store,
            storage=UploadStorage(tmp_path / "uploads"),
        )
        return pipeline, gateway
    return make


@pytest.fixture
def offer_jobs(pdf_factory):
    return [
        ExtractionJob("angebotsvergleich", pdf_factory("Angebot Bank A"), "bank_a.pdf"),
        ExtractionJob("angebotsvergleich", pdf_factory("Angebot Bank B"), "bank_b.pdf"),
    ]


class TestProcessSingle:
    """Tests for the single-document flow."""

    def test_invoice_end_to_end(self, make_pipeline, pdf_factory, tmp_path):
        pipeline, gateway = make_pipeline([INVOICE_REPLY])
        job = ExtractionJob("invoice", pdf_factory("Invoice #123, Total: 450.00"), "rechnung.pdf")

        result = pipeline.process_single(job)

        assert result.extracted_data["totalAmount"] == 450
        assert result.confidence == 0.75
        assert result.document_type == "invoice"
        assert result.to_dict()["fileName"] == "rechnung.pdf"
        assert "Invoice #123, Total: 450.00" in gateway.prompts[0]
        assert "Document Content:" in gateway.prompts[0]
        assert list((tmp_path / "uploads").iterdir()) == []

    def test_in_memory_extraction(self, registry, checklists, gateway_factory, pdf_factory, tmp_path):
        pipeline = DocumentPipeline(
            registry, checklists, gateway_factory([INVOICE_REPLY]),
            storage=UploadStorage(tmp_path / "uploads"), stage_uploads=False,
        )
        job = ExtractionJob("invoice", pdf_factory("Invoice #123"), "rechnung.pdf")

        assert pipeline.process_single(job).confidence == 0.75
        assert not (tmp_path / "uploads").exists()

    def test_docx_with_content_placeholder(self, make_pipeline, docx_factory):
        pipeline, gateway = make_pipeline(['{"einnahmen": 3000, "ausgaben": null}'])
        job = ExtractionJob("haushaltsrechnung", docx_factory(["Einnahmen 3000"]), "budget.docx")

        result = pipeline.process_single(job)

        assert gateway.prompts[0] == "Haushaltsrechnung:\nEinnahmen 3000"
        assert result.confidence == 0.5

    @pytest.mark.parametrize("job,error", [
        (ExtractionJob("passport_scan", b"%PDF", "a.pdf"), UnsupportedDocumentTypeError),
        (ExtractionJob("invoice", b"x" * (10 * 1024 * 1024 + 1), "a.pdf"), FileTooLargeError),
        (ExtractionJob("invoice", b"PK", "a.docx"), UnsupportedFormatError),
    ])
    def test_validation_before_model_call(self, make_pipeline, job, error):
        pipeline, gateway = make_pipeline([INVOICE_REPLY])

        with pytest.raises(error):
            pipeline.process_single(job)

        assert gateway.prompts == []

    def test_missing_prompt_template(self, make_pipeline, pdf_factory):
        pipeline, gateway = make_pipeline([INVOICE_REPLY])
        job = ExtractionJob("document_verification", pdf_factory("Pass"), "pass.pdf")

        with pytest.raises(PromptNotFoundError):
            pipeline.process_single(job)

        assert gateway.prompts == []

    def test_model_failure_propagates(self, make_pipeline, pdf_factory):
        pipeline, _ = make_pipeline([GatewayOutcome.failure(ReplyStatus.AUTH_ERROR, "bad key")])
        job = ExtractionJob("invoice", pdf_factory("Invoice"), "rechnung.pdf")

        with pytest.raises(ModelAuthError):
            pipeline.process_single(job)

    def test_unparseable_reply(self, make_pipeline, pdf_factory):
        pipeline, _ = make_pipeline(["Sorry, I cannot help with that."])
        job = ExtractionJob("invoice", pdf_factory("Invoice"), "rechnung.pdf")

        with pytest.raises(InvalidResponseFormatError):
            pipeline.process_single(job)


class TestProcessComparison:
    """Tests for the multi-offer comparison flow."""

    def test_compare_two_offers(self, make_pipeline, offer_jobs):
        comparison_reply = json.dumps({"comparison": {
            "parameters": ["anbieter", "kreditbetrag", "effektivzinssatz"],
            "bestOffer": [
                {"parameter": "kreditbetrag", "offerId": "offer_1", "value": "200.000 €"},
                {"parameter": "anbieter", "offerId": "offer_2", "reason": "Regionalbank"},
            ],
        }})
        pipeline, gateway = make_pipeline([
            _offer_reply("Bank A", "200.000 €", "3,40 %"),
            _offer_reply("Bank B", "250.000 €", "3,10 %"),
            comparison_reply,
        ])

        report = pipeline.process_comparison(offer_jobs, "angebotsvergleich")

        data = report.to_dict()
        assert [o["fileName"] for o in data["individualOffers"]] == ["bank_a.pdf", "bank_b.pdf"]
        assert report.comparison.best_for("kreditbetrag").offer_id == "offer_2"
        assert report.comparison.best_for("effektivzinssatz").offer_id == "offer_2"
        assert report.comparison.best_for("anbieter").reason == "Regionalbank"
        assert report.confidences == [1.0, 1.0]
        assert gateway.prompts[2].startswith("Compare these offers:\nOffer 1 (bank_a.pdf):")
        assert "Offer 2 (bank_b.pdf):" in gateway.prompts[2]

    def test_file_count_checked_first(self, make_pipeline, offer_jobs):
        pipeline, gateway = make_pipeline([])

        with pytest.raises(ValidationError, match="at least 2"):
            pipeline.process_comparison(offer_jobs[:1], "angebotsvergleich")

        assert gateway.prompts == []

    def test_every_file_validated_before_extraction(self, make_pipeline, offer_jobs):
        pipeline, gateway = make_pipeline([])
        jobs = offer_jobs + [ExtractionJob("angebotsvergleich", b"PK", "c.docx")]

        with pytest.raises(UnsupportedFormatError):
            pipeline.process_comparison(jobs, "angebotsvergleich")

        assert gateway.prompts == []

    def test_first_failure_aborts_batch(self, make_pipeline, offer_jobs):
        pipeline, gateway = make_pipeline([
            _offer_reply("Bank A", "200.000 €", "3,40 %"),
            "not json at all",
            "{}",
        ])

        with pytest.raises(InvalidResponseFormatError):
            pipeline.process_comparison(offer_jobs, "angebotsvergleich")

        assert len(gateway.prompts) == 2

    def test_type_without_comparison_template(self, make_pipeline, pdf_factory):
        pipeline, gateway = make_pipeline([])
        jobs = [ExtractionJob("angebotserfassung", pdf_factory("Bank A"), "a.pdf")]

        with pytest.raises(UnsupportedDocumentTypeError) as exc_info:
            pipeline.process_comparison(jobs, "angebotserfassung")

        assert exc_info.value.details["operation"] == "comparison"
        assert gateway.prompts == []

    def test_single_file_type_rejected(self, make_pipeline, pdf_factory):
        pipeline, gateway = make_pipeline([])
        jobs = [
            ExtractionJob("invoice", pdf_factory("Invoice 1"), "a.pdf"),
            ExtractionJob("invoice", pdf_factory("Invoice 2"), "b.pdf"),
        ]

        with pytest.raises(UnsupportedDocumentTypeError) as exc_info:
            pipeline.process_comparison(jobs, "invoice")

        assert exc_info.value.message == "Document type does not support comparison: invoice"
        assert gateway.prompts == []


class TestProcessRegistration:
    """Tests for the registration flow."""

    @pytest.fixture
    def store(self, tmp_path):
        return LoanOfferStore(tmp_path / "offers.db")

    def test_register_and_persist(self, make_pipeline, pdf_factory, store):
        pipeline, _ = make_pipeline([
            _offer_reply("Bank A", "250.000 €", "3,40 %",
                         angebotsdatum="01.01.2020", fixzinsperiode="01.01.2027"),
            _offer_reply("Bank B", "300.000 €", None, fixzinsperiode="10 Jahre"),
        ], store=store)
        jobs = [
            ExtractionJob("angebotserfassung", pdf_factory("Bank A"), "a.pdf"),
            ExtractionJob("angebotserfassung", pdf_factory("Bank B"), "b.pdf"),
        ]

        result = pipeline.process_registration(jobs, "angebotserfassung")

        data = result.to_dict()
        assert data["persistenceOutcome"] == {"success": True, "savedCount": 2, "requestedCount": 2}
        assert data["individualOffers"][0]["fixzinssatz_in_jahren"] == "7 Jahre"
        assert data["individualOffers"][1]["fixzinssatz_in_jahren"] == "10 Jahre"
        assert data["confidence"] == 0.9375
        rows = {row["fileName"]: row for row in store.get_all()}
        assert rows["a.pdf"]["fixzinssatz_in_jahren"] == "7 Jahre"
        assert rows["b.pdf"]["anbieter"] == "Bank B"

    def test_persistence_failure_is_reported(self, make_pipeline, pdf_factory, tmp_path):
        store = LoanOfferStore(tmp_path / "offers.db")
        store.db_path = tmp_path / "gone" / "offers.db"
        pipeline, _ = make_pipeline([_offer_reply("Bank A", "1", "2")], store=store)
        jobs = [ExtractionJob("angebotserfassung", pdf_factory("Bank A"), "a.pdf")]

        result = pipeline.process_registration(jobs, "angebotserfassung")

        assert result.persistence.success is False
        assert result.individual_offers[0]["anbieter"] == "Bank A"

    def test_unopenable_database_is_reported(self, make_pipeline, pdf_factory, tmp_path, monkeypatch):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        config_value = database_handler.get_config
        monkeypatch.setattr(
            database_handler, "get_config",
            lambda key, default=None: (
                str(blocker / "offers.db") if key == "paths.database" else config_value(key, default)
            ),
        )
        pipeline, _ = make_pipeline([_offer_reply("Bank A", "1", "2")])
        jobs = [ExtractionJob("angebotserfassung", pdf_factory("Bank A"), "a.pdf")]

        result = pipeline.process_registration(jobs, "angebotserfassung")

        assert result.persistence.success is False
        assert result.persistence.saved_count == 0
        assert result.persistence.requested_count == 1
        assert "open database" in result.persistence.error
        assert result.individual_offers[0]["anbieter"] == "Bank A"

    def test_single_file_type_rejected(self, make_pipeline, pdf_factory, tmp_path):
        store = LoanOfferStore(tmp_path / "offers.db")
        pipeline, gateway = make_pipeline([INVOICE_REPLY], store=store)
        jobs = [ExtractionJob("invoice", pdf_factory("Invoice #123"), "rechnung.pdf")]

        with pytest.raises(UnsupportedDocumentTypeError):
            pipeline.process_registration(jobs, "invoice")

        assert gateway.prompts == []
        assert store.get_all() == []


class TestVerify:
    """Tests for the verification flow."""

    def _answers(self, checklist, passed=True):
        return json.dumps({"verification": {
            item.id: {"passed": passed, "reason": "geprüft"} for item in checklist.items
        }})

    def test_failures_are_contained(self, make_pipeline, pdf_factory, passport_checklist):
        pipeline, gateway = make_pipeline([self._answers(passport_checklist), "kein JSON"])
        jobs = [
            ExtractionJob("document_verification", pdf_factory("REISEPASS"), "pass_1.pdf"),
            ExtractionJob("document_verification", pdf_factory("REISEPASS"), "pass_2.pdf"),
            ExtractionJob("document_verification", pdf_factory(""), "blank.pdf"),
        ]

        batch = pipeline.verify(jobs, ["austrian_passport"] * 3)

        first, second, third = batch.documents
        assert first.verified
        assert second.error["kind"] == "InvalidResponseFormat"
        assert third.error == {"kind": "NoReadableText", "message": "PDF contains no readable text"}
        assert third.total_count == 5
        assert not batch.overall_verified
        assert len(gateway.prompts) == 2
        assert [d["fileName"] for d in batch.to_dict()["documents"]] == ["pass_1.pdf", "pass_2.pdf", "blank.pdf"]

    def test_all_verified(self, make_pipeline, pdf_factory, passport_checklist):
        pipeline, _ = make_pipeline([self._answers(passport_checklist)])
        jobs = [ExtractionJob("document_verification", pdf_factory("REISEPASS"), "pass.pdf")]

        assert pipeline.verify(jobs, ["austrian_passport"]).overall_verified

    def test_request_errors_fail_before_model_call(self, make_pipeline, pdf_factory):
        pipeline, gateway = make_pipeline([])
        job = ExtractionJob("document_verification", pdf_factory("REISEPASS"), "pass.pdf")

        with pytest.raises(ValidationError, match="No files uploaded"):
            pipeline.verify([], [])
        with pytest.raises(ValidationError):
            pipeline.verify([job, job], ["austrian_passport"])
        with pytest.raises(ChecklistNotFoundError):
            pipeline.verify([job], ["drivers_license"])
        with pytest.raises(UnsupportedFormatError):
            pipeline.verify([ExtractionJob("document_verification", b"PK", "a.docx")], ["austrian_passport"])
        with pytest.raises(ValidationError, match="at most 10"):
            pipeline.verify([job] * 11, ["austrian_passport"] * 11)

        assert gateway.prompts == []
