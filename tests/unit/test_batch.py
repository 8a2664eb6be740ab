from decimal import Decimal

from tax_engine.assessment.aggregator import assess
from tax_engine.assessment.batch import assess_batch
from tax_engine.core.models import AssessmentStage, TaxType
from tests.fixtures.engine_inputs import make_request

D = Decimal


def test_batch_preserves_order_and_isolates_failures(registry):
    requests = [
        make_request(client_id=f"SL-{i:04d}", taxable_base=D(600000 + i * 10000)) for i in range(12)
    ]
    requests[5] = make_request(client_id="SL-BROKEN", revenue=D("-1"))
    requests.append(make_request(TaxType.GST, client_id="SL-GST"))

    report = assess_batch(requests, registry, max_workers=3)

    assert [o.client_id for o in report.outcomes] == [r.client_id for r in requests]
    assert report.registry_version == "SL-FA2020"
    assert [f.client_id for f in report.failures] == ["SL-BROKEN"]
    assert report.failures[0].stage is AssessmentStage.VALIDATION
    assert len(report.results) == 12
    assert report.outcomes[-1].total_due == D("100000.00")


def test_batch_matches_single_assessment(registry):
    request = make_request(taxable_base=D("2500000"))
    report = assess_batch([request], registry, max_workers=1)
    assert report.results[0].fingerprint() == assess(request, registry).fingerprint()


def test_empty_batch(registry):
    report = assess_batch([], registry)
    assert report.outcomes == ()
    assert report.failures == []
