"""Tests for the database management CLI."""

import json
from decimal import Decimal

import pytest
from manage import main, seed_products


@pytest.fixture()
def products_file(tmp_path):
    path = tmp_path / "products.json"
    path.write_text(
        json.dumps(
            [
                {"id": "prod-A", "title": "Widget", "price": "50.00", "stock": 10},
                {"id": "prod-B", "title": "Gadget", "price": 20, "sale_price": "15.50", "stock": 3, "image": "g.png"},
            ]
        )
    )
    return path


def test_seed_products(products_file, catalogue):
    assert seed_products(products_file) == 2

    gadget = catalogue.get_product("prod-B")
    assert gadget.effective_price == Decimal("15.50")
    assert gadget.stock == 3
    assert gadget.image == "g.png"


def test_seeding_twice_updates(products_file, catalogue, tmp_path):
    seed_products(products_file)
    update = tmp_path / "update.json"
    update.write_text(json.dumps([{"id": "prod-A", "title": "Widget", "price": "45.00", "stock": 1}]))

    seed_products(update)

    widget = catalogue.get_product("prod-A")
    assert widget.price == Decimal("45.00")
    assert widget.stock == 1


def test_seed_rejects_non_list(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"id": "prod-A"}))
    with pytest.raises(ValueError):
        seed_products(path)


def test_cli_seed(products_file, catalogue, capsys):
    main(["seed-products", str(products_file)])
    assert "Loaded 2 products" in capsys.readouterr().out
    assert catalogue.get_product("prod-A") is not None


def test_cli_setup_db_is_repeatable(capsys):
    main(["setup-db"])
    assert "Done." in capsys.readouterr().out


def test_cli_requires_command():
    with pytest.raises(SystemExit):
        main([])
