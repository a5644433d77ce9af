from pos_backend.models import PaymentType
from pos_backend.services import sales_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    assert first.exit_code == 0
    assert "2 payment type(s) added" in first.output

    second = runner.invoke(args=["system", "init"])
    assert second.exit_code == 0
    assert "0 payment type(s) added" in second.output
    assert db_session.query(PaymentType).count() == 2


def test_tax_report(app, db_session, vat_product):
    sales_service.create_sale([{"product_id": vat_product.id, "quantity": 2, "tax_exempt": True}])
    runner = app.test_cli_runner()

    result = runner.invoke(args=["reports", "tax"])

    assert result.exit_code == 0
    assert "Expected tax:       30.00" in result.output
    assert "Excluded tax:       30.00" in result.output
    assert "Items tax-excluded: 1" in result.output


def test_tax_report_bad_range(app, db_session):
    result = app.test_cli_runner().invoke(args=["reports", "tax", "--start", "nope"])

    assert result.exit_code != 0
    assert "ISO-8601" in result.output
