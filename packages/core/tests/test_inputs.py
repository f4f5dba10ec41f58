from prwarden_core.inputs import Inputs


class TestRender:
    def test_substitutes_known_values(self):
        inputs = Inputs(title="Fix bug", filename="a.py")
        assert inputs.render("PR $title touches $filename") == "PR Fix bug touches a.py"

    def test_defaults(self):
        assert Inputs().render("$title / $description") == "no title provided / no description provided"

    def test_empty_value_keeps_placeholder(self):
        assert Inputs().render("summary: $short_summary") == "summary: $short_summary"

    def test_unknown_placeholder_untouched(self):
        assert Inputs().render("cost $amount") == "cost $amount"

    def test_empty_template(self):
        assert Inputs().render("") == ""
        assert Inputs().render(None) == ""

    def test_values_are_not_rescanned(self):
        inputs = Inputs(title="$filename", filename="a.py")
        assert inputs.render("$title") == "$filename"


class TestClone:
    def test_clone_is_independent(self):
        original = Inputs(title="one")
        copy = original.clone()
        copy.title = "two"
        assert original.title == "one"
