"""
Unit tests for main.py - command-line entry point.
"""

import json
import pytest

from meal_personalization.main import build_parser, main


@pytest.fixture
def catalog_file(tmp_path, pantry, peanut_noodles, beef_chili, kale_salad):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "ingredients": [i.to_dict() for i in pantry],
        "recipes": [r.to_dict() for r in (peanut_noodles, beef_chili, kale_salad)],
    }))
    return str(path)


@pytest.fixture
def profile_file(tmp_path, user_profile):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(user_profile.to_dict()))
    return str(path)


def _run(capsys, argv):
    main(argv)
    return json.loads(capsys.readouterr().out)


class TestCommands:
    """Tests for each CLI command."""

    def test_substitute(self, capsys, catalog_file):
        result = _run(capsys, [
            "substitute", "--catalog", catalog_file, "--ingredient", "peanut butter", "--allergen", "peanut",
        ])
        assert result["substitute"]["name"] == "almond butter"

    def test_modify_uses_profile(self, capsys, catalog_file, profile_file):
        result = _run(capsys, [
            "modify", "--catalog", catalog_file, "--profile", profile_file, "--recipe-id", "recipe-peanut-noodles",
        ])
        assert len(result["modifications"]) == 1
        assert result["unresolved_restrictions"] == []

    def test_portions(self, capsys, catalog_file):
        result = _run(capsys, [
            "portions", "--catalog", catalog_file, "--recipe-id", "recipe-beef-chili", "--servings", "2",
        ])
        assert result["servings"] == 2
        assert result["ingredients"][0]["quantity"] == pytest.approx(250)

    def test_recommend(self, capsys, catalog_file):
        result = _run(capsys, ["recommend", "--catalog", catalog_file, "--limit", "1"])
        assert len(result["recipes"]) == 1

    def test_optimize_without_method(self, capsys, catalog_file):
        result = _run(capsys, ["optimize", "--catalog", catalog_file, "--recipe-id", "recipe-kale-salad"])
        assert result == {"optimization": None}


class TestErrors:
    """Tests for argument and lookup failures."""

    def test_unknown_recipe_exits_nonzero(self, catalog_file):
        with pytest.raises(SystemExit) as exc:
            main(["modify", "--catalog", catalog_file, "--recipe-id", "recipe-missing"])
        assert exc.value.code == 1

    def test_portions_requires_servings(self, catalog_file):
        with pytest.raises(SystemExit) as exc:
            main(["portions", "--catalog", catalog_file, "--recipe-id", "recipe-beef-chili"])
        assert exc.value.code == 2

    def test_parser_defaults(self):
        args = build_parser().parse_args(["recommend", "--catalog", "c.json"])
        assert args.meal_type == "dinner"
        assert args.hour == 19
        assert args.allergen == []
