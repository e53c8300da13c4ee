import threading

import pytest

from bulk_import.core.models import (
    AttributeMapping,
    BulkOperationResult,
    CorrelationId,
    ImportReport,
    OutcomeClass,
    ImportSummary,
    ValidationErrorDescriptor,
    ValidationResult,
)


class TestCorrelationId:
    def test_serialize(self):
        assert CorrelationId(username="jdoe", nonce="n1").serialize() == "bulkId:jdoe:n1"
        assert str(CorrelationId(username="jdoe", nonce="n1")) == "bulkId:jdoe:n1"

    @pytest.mark.parametrize("username", ["jdoe", "svc:deploy", "a:b:c", "PARTNERS/jdoe", ""])
    def test_round_trip(self, username):
        original = CorrelationId.new(username)
        assert CorrelationId.parse(original.serialize()) == original

    def test_new_generates_unique_nonces(self):
        assert CorrelationId.new("jdoe").nonce != CorrelationId.new("jdoe").nonce

    @pytest.mark.parametrize("raw", ["", "bulkId", "bulkId:jdoe", ":jdoe:n1", "bulkId:jdoe:"])
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(ValueError):
            CorrelationId.parse(raw)


def test_attribute_mapping_strips_dialect_prefix():
    attribute = AttributeMapping(
        attribute_name="manager",
        mapped_local_claim_uri="http://wso2.org/claims/manager",
        mapped_scim_attribute_uri="urn:ext:enterprise:User:manager.displayName",
        mapped_scim_claim_dialect_uri="urn:ext:enterprise:User",
    )
    assert attribute.scim_attribute == "manager.displayName"
    assert attribute.to_dict()["mappedSCIMClaimDialectURI"] == "urn:ext:enterprise:User"


def test_validation_descriptor_omits_empty_values():
    assert ValidationErrorDescriptor("a.message", "a.description").to_dict() == {
        "messageKey": "a.message",
        "descriptionKey": "a.description",
    }
    assert not ValidationResult(valid=False)
    assert ValidationResult(valid=True)


class TestImportSummary:
    def test_record_returns_snapshot(self):
        summary = ImportSummary()
        assert summary.record(True) == {"successCount": 1, "failedCount": 0}
        assert summary.record(False) == {"successCount": 1, "failedCount": 1}
        assert summary.snapshot() == {"successCount": 1, "failedCount": 1}

    def test_concurrent_records_are_not_lost(self):
        summary = ImportSummary()

        def worker(succeeded):
            for _ in range(500):
                summary.record(succeeded)

        threads = [threading.Thread(target=worker, args=(i % 2 == 0,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert summary.success_count == 2000
        assert summary.failed_count == 2000
        assert summary.total == 4000


def test_report_done_when_every_result_counted():
    summary = ImportSummary()
    report = ImportReport(results=[], summary=summary, expected=0)
    assert report.done
    assert report.to_dict() == {"results": [], "summary": {"successCount": 0, "failedCount": 0}, "done": True}


def test_report_not_done_when_results_are_missing():
    summary = ImportSummary()
    summary.record(True)
    result = BulkOperationResult("jdoe", 201, OutcomeClass.SUCCESS, "userCreatedMessage", "created")
    report = ImportReport(results=[result], summary=summary, expected=2)
    assert not report.done
    assert report.to_dict()["done"] is False
