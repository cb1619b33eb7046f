"""Library string parsing, exact resolution and dependency closure."""
import pytest

from activity_studio.domain.common import errors
from activity_studio.domain.h5p.rules import library_to_string, parse_library_string


def test_parse_library_string():
    result = parse_library_string("H5P.MultiChoice 1.16")
    assert result.is_success
    ref = result.value
    assert (ref.machine_name, ref.major_version, ref.minor_version) == ("H5P.MultiChoice", 1, 16)
    assert not ref.is_resolved
    assert library_to_string(ref) == "H5P.MultiChoice 1.16"


@pytest.mark.parametrize(
    "value",
    ["H5P.MultiChoice", "H5P.MultiChoice 1", "H5P.MultiChoice 1.2.3", "H5P MultiChoice 1.2", "", "1.2", None, 42],
)
def test_malformed_library_strings(value):
    result = parse_library_string(value)
    assert not result.is_success
    assert result.code == errors.MALFORMED_LIBRARY_STRING


def test_resolve_exact_match(studio):
    result = studio.registry.resolve_string("H5P.MultiChoice 1.16")
    assert result.is_success
    assert result.value.is_resolved
    assert str(result.value) == "H5P.MultiChoice 1.16"


def test_resolve_has_no_fuzzy_matching(studio):
    for candidate in ("H5P.MultiChoice 1.15", "H5P.MultiChoice 2.16", "h5p.multichoice 1.16", "circle 1.2"):
        result = studio.registry.resolve_string(candidate)
        assert not result.is_success
        assert result.code == errors.LIBRARY_NOT_FOUND


def test_malformed_is_distinct_from_not_found(studio):
    assert studio.registry.resolve_string("circle").code == errors.MALFORMED_LIBRARY_STRING
    assert studio.registry.resolve_string("circle 1.2").code == errors.LIBRARY_NOT_FOUND


def test_dependencies_are_transitive(studio):
    studio.registry.install("H5P.QuestionSet 1.20", dependencies=["H5P.MultiChoice 1.16", "H5P.TrueFalse 1.8"])
    ref = studio.registry.resolve_string("H5P.QuestionSet 1.20").value

    names = {str(dep) for dep in studio.registry.dependencies(ref)}

    assert names == {
        "H5P.MultiChoice 1.16",
        "H5P.TrueFalse 1.8",
        "H5P.Question 1.4",
        "H5P.JoubelUI 1.3",
    }


def test_install_requires_installed_dependencies(studio):
    result = studio.registry.install("H5P.Blanks 1.14", dependencies=["H5P.Missing 1.0"])
    assert not result.is_success
    assert result.code == errors.LIBRARY_NOT_FOUND
    assert not studio.registry.resolve_string("H5P.Blanks 1.14").is_success


def test_reinstall_keeps_library_id(studio):
    before = studio.registry.resolve_string("H5P.Text 1.1").value
    studio.registry.install("H5P.Text 1.1", title="Text", patch_version=3, embed_types="div")
    after = studio.registry.resolve_string("H5P.Text 1.1").value
    assert before.library_id == after.library_id
    assert studio.registry.get_library(after).patch_version == 3
