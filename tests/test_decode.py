import unittest

from linkpreview.decode import REPLACEMENT_CHAR, clean_escapes, decode_entities


class DecodeEntitiesTests(unittest.TestCase):
    def test_named_entities(self) -> None:
        self.assertEqual(
            "<b>Tom & \"Jerry\"</b> it's here",
            decode_entities("&lt;b&gt;Tom &amp; &quot;Jerry&quot;&lt;/b&gt;&nbsp;it&#039;s&nbsp;here"),
        )
        self.assertEqual("it's it's", decode_entities("it&apos;s it&#39;s"))

    def test_numeric_references_decode_astral_code_points(self) -> None:
        self.assertEqual("\U0001F600", decode_entities("&#x1F600;"))
        self.assertEqual("\U0001F600", decode_entities("&#X1f600;"))
        self.assertEqual("\U0001F44D", decode_entities("&#128077;"))
        self.assertEqual(1, len(decode_entities("&#x1F600;")))
        self.assertEqual("café", decode_entities("caf&#233;"))

    def test_invalid_code_points_become_replacement_char(self) -> None:
        self.assertEqual(REPLACEMENT_CHAR, decode_entities("&#x110000;"))
        self.assertEqual(REPLACEMENT_CHAR, decode_entities("&#xD800;"))
        self.assertEqual(REPLACEMENT_CHAR, decode_entities("&#99999999999999999999;"))

    def test_oversized_references_become_replacement_char(self) -> None:
        self.assertEqual("Hi " + REPLACEMENT_CHAR, decode_entities("Hi &#" + "1" * 5000 + ";"))
        self.assertEqual(REPLACEMENT_CHAR, decode_entities("&#x" + "f" * 5000 + ";"))

    def test_non_ascii_digits_are_not_references(self) -> None:
        text = "&#٣٥;"
        self.assertEqual(text, decode_entities(text))

    def test_idempotent_on_decoded_text(self) -> None:
        for text in ["Tom & Jerry <3", "Grüße \U0001F600", "plain text", ""]:
            once = decode_entities(text)
            self.assertEqual(once, decode_entities(once))

    def test_unknown_entities_left_alone(self) -> None:
        self.assertEqual("&copy; 2024 &foo;", decode_entities("&copy; 2024 &foo;"))

    def test_url_ampersands(self) -> None:
        self.assertEqual(
            "https://scontent.xx.fbcdn.net/v/t1.jpg?stp=dst&_nc_cat=1&oh=abc",
            decode_entities("https://scontent.xx.fbcdn.net/v/t1.jpg?stp=dst&amp;_nc_cat=1&amp;oh=abc"),
        )


class CleanEscapesTests(unittest.TestCase):
    def test_collapses_literal_escapes(self) -> None:
        self.assertEqual(
            "Line one Line two tabbed",
            clean_escapes(r"Line one\nLine two\t\ttabbed\r"),
        )

    def test_unescapes_quotes_and_backslashes(self) -> None:
        self.assertEqual('He said "hi"', clean_escapes(r'He said \"hi\"'))
        self.assertEqual("it's", clean_escapes(r"it\'s"))
        self.assertEqual("a\\b", clean_escapes(r"a\\b"))

    def test_collapses_whitespace_and_trims(self) -> None:
        self.assertEqual("a b c", clean_escapes("  a \n\n b\t\tc  "))

    def test_empty_input(self) -> None:
        self.assertEqual("", clean_escapes(""))
        self.assertEqual("", clean_escapes("   "))


if __name__ == "__main__":
    unittest.main()
