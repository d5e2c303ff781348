import re

from rappimage.bundle.profile import BLOCKED_FUNCTIONS, render_rprofile, write_rprofile
from rappimage.config import DEFAULT_PACKAGES, BuildMode


def _package_vector(text):
    match = re.search(r"\.AppImage\.packages <- c\((.*)\)", text)
    assert match, "package vector not found"
    return re.findall(r'"([^"]+)"', match.group(1))


class TestMinimalProfile:

    def test_names_no_preinstalled_packages(self):
        text = render_rprofile(BuildMode.MINIMAL)
        for name in DEFAULT_PACKAGES:
            assert not re.search(rf"\b{re.escape(name)}\b", text), name
        assert ".AppImage.packages" not in text

    def test_explains_installation_is_disabled(self):
        text = render_rprofile(BuildMode.MINIMAL)
        assert "Package installation is disabled" in text
        assert "minimal" in text


class TestWithPackagesProfile:

    def test_enumerates_exactly_the_given_packages(self):
        text = render_rprofile(BuildMode.WITH_PACKAGES, ["jsonlite", "dplyr"])
        assert _package_vector(text) == ["jsonlite", "dplyr"]
        for name in set(DEFAULT_PACKAGES) - {"jsonlite", "dplyr"}:
            assert not re.search(rf"\b{re.escape(name)}\b", text), name

    def test_disables_installation(self):
        text = render_rprofile(BuildMode.WITH_PACKAGES, ["jsonlite", "dplyr"])
        assert "Package installation is disabled" in text


class TestCommonProfile:

    def test_both_variants_lock_package_functions(self):
        for text in (
            render_rprofile(BuildMode.MINIMAL),
            render_rprofile(BuildMode.WITH_PACKAGES, ["jsonlite"]),
        ):
            for name in BLOCKED_FUNCTIONS:
                assert f'"{name}"' in text
            assert 'asNamespace("utils")' in text
            assert "show.available.packages <- function()" in text
            assert 'r["CRAN"] <- "https://cloud.r-project.org"' in text

    def test_braces_are_balanced(self):
        text = render_rprofile(BuildMode.WITH_PACKAGES, ["jsonlite"])
        assert text.count("{") == text.count("}")
        assert "{{" not in text

    def test_write_rprofile(self, tmp_path):
        path = tmp_path / "etc" / "Rprofile.site"
        write_rprofile(path, BuildMode.WITH_PACKAGES, ["jsonlite", "dplyr"])
        assert _package_vector(path.read_text()) == ["jsonlite", "dplyr"]
