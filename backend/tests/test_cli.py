from retail_erp.models import NumberingRule, PaymentMethod


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    assert first.exit_code == 0
    assert "DONE System initialized" in first.output

    second = runner.invoke(args=["system", "init"])
    assert "none (already present)" in second.output

    assert db_session.query(PaymentMethod).count() == 3
    assert db_session.query(NumberingRule).filter_by(code="ORDER").count() == 1


def test_numbering_preview_and_reset(app, db_session, order_rule):
    runner = app.test_cli_runner()

    preview = runner.invoke(args=["numbering", "preview", "ORDER"])
    assert preview.output.strip().startswith("ORD")
    assert preview.output.strip().endswith("0001")

    assert "FAIL" in runner.invoke(args=["numbering", "preview", "NOPE"]).output
    assert "PASS" in runner.invoke(args=["numbering", "reset", "ORDER"]).output


def test_low_stock_report(app, db_session, products):
    result = app.test_cli_runner().invoke(args=["inventory", "low-stock"])
    assert "1 product(s) at or below safety stock" in result.output
