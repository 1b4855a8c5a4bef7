"""Turkish name collation tests"""

from app.services.collation import name_sort_key


def _sorted(names):
    return sorted(names, key=name_sort_key)


class TestNameSortKey:
    """name_sort_key() tests"""

    def test_turkish_letters_follow_base_letter(self) -> None:
        assert _sorted(["Şule", "Selin", "Tuna"]) == ["Selin", "Şule", "Tuna"]
        assert _sorted(["Ömer", "Oya", "Pelin"]) == ["Oya", "Ömer", "Pelin"]
        assert _sorted(["Güneş", "Gül", "Ğ", "Hale"]) == ["Gül", "Güneş", "Ğ", "Hale"]

    def test_dotless_i_before_dotted_i(self) -> None:
        """Turkish case folding: I -> ı, İ -> i"""
        assert _sorted(["İsmail", "Irmak", "Hakan", "Jale"]) == ["Hakan", "Irmak", "İsmail", "Jale"]

    def test_case_insensitive_primary_order(self) -> None:
        assert _sorted(["zeynep", "Ayşe", "burak"]) == ["Ayşe", "burak", "zeynep"]

    def test_shorter_prefix_first(self) -> None:
        assert _sorted(["Ali Veli", "Ali"]) == ["Ali", "Ali Veli"]

    def test_order_is_total(self) -> None:
        """Names differing only in case never compare equal"""
        assert name_sort_key("ayşe") != name_sort_key("Ayşe")
        assert _sorted(["ayşe", "Ayşe"]) == _sorted(["Ayşe", "ayşe"])

    def test_surrounding_whitespace_ignored(self) -> None:
        assert name_sort_key("  Ayşe ") == name_sort_key("Ayşe")
