import unittest

from emetals.password_strength import analyze_password, character_variety


class TestPasswordStrength(unittest.TestCase):
    def test_empty_password(self):
        strength = analyze_password("")
        self.assertEqual(strength.score, 0)
        self.assertEqual(strength.label, "Too short")
        self.assertEqual(strength.hint, "Type a password")
        self.assertEqual(strength.width, 0)

    def test_single_class_short(self):
        strength = analyze_password("abc")
        self.assertEqual(strength.score, 0)
        self.assertEqual(strength.label, "Very weak")

    def test_length_only(self):
        # 8 lowercase letters: length point, no variety
        strength = analyze_password("abcdefgh")
        self.assertEqual(strength.score, 1)
        self.assertEqual(strength.label, "Weak")
        self.assertEqual(strength.width, 25)

    def test_long_mixed_password_is_strong(self):
        strength = analyze_password("Abcdefgh1234!")
        self.assertEqual(strength.score, 4)
        self.assertEqual(strength.label, "Strong")
        self.assertEqual(strength.width, 100)

    def test_good_password(self):
        strength = analyze_password("Abcdefg1")
        self.assertEqual(strength.score, 3)
        self.assertEqual(strength.label, "Good")
        self.assertEqual(strength.width, 75)

    def test_short_password_never_reaches_good(self):
        for password in ("aB1!", "Ab1", "a!", "ABCdef1", "x" * 7):
            with self.subTest(password=password):
                self.assertLess(analyze_password(password).score, 3)

    def test_short_varied_password_scores_okay(self):
        # no length points, full variety points
        strength = analyze_password("aB1!")
        self.assertEqual(strength.score, 2)
        self.assertEqual(strength.label, "Okay")
        self.assertEqual(strength.width, 50)

    def test_score_and_width_bounds(self):
        for password in ("a", "aaaaaaaaaaaaaaaa", "Aa1!" * 10, "12345678"):
            with self.subTest(password=password):
                strength = analyze_password(password)
                self.assertGreaterEqual(strength.score, 0)
                self.assertLessEqual(strength.score, 4)
                self.assertEqual(strength.width, round(strength.score / 4 * 100))

    def test_character_variety(self):
        self.assertEqual(character_variety("abc"), 1)
        self.assertEqual(character_variety("aB"), 2)
        self.assertEqual(character_variety("aB3"), 3)
        self.assertEqual(character_variety("aB3$"), 4)
        self.assertEqual(character_variety(""), 0)

    def test_to_dict(self):
        self.assertEqual(
            analyze_password("abcdefgh").to_dict(),
            {"score": 1, "label": "Weak", "hint": "Add more characters and variety", "width": 25},
        )


if __name__ == "__main__":
    unittest.main()
