import unittest

from emetals.auth_schemas import ForgotPasswordForm, LoginForm, OtpForm, RegisterForm, ResetPasswordForm
from emetals.flows.otp import otp_error
from emetals.validation import validate_form

VALID_REGISTRATION = {
    "name": "Jane Doe",
    "email": "jane@emetals.io",
    "password": "Str0ng!Pass",
    "confirm_password": "Str0ng!Pass",
}


def register(**overrides):
    return validate_form(RegisterForm, {**VALID_REGISTRATION, **overrides})


class TestRegisterForm(unittest.TestCase):
    def test_valid_registration(self):
        form, errors = register()
        self.assertEqual(errors, {})
        self.assertEqual(form.email, "jane@emetals.io")
        self.assertEqual(form.name, "Jane Doe")

    def test_name_rules(self):
        self.assertEqual(register(name="J")[1], {"name": "Name must be at least 2 characters long"})
        self.assertEqual(register(name="J" * 51)[1], {"name": "Name must be less than 50 characters"})
        self.assertEqual(register(name="Jane3")[1], {"name": "Name can only contain letters and spaces"})

    def test_email_rules(self):
        self.assertEqual(register(email="")[1], {"email": "Email is required"})
        self.assertEqual(register(email="not-an-email")[1], {"email": "Please enter a valid email address"})
        long_email = "a" * 250 + "@x.io"
        self.assertEqual(register(email=long_email)[1], {"email": "Email is too long"})

    def test_password_rules_in_order(self):
        cases = {
            "Sh0rt!": "Password must be at least 8 characters long",
            "NOLOWER1!": "Password must contain at least one lowercase letter",
            "noupper1!": "Password must contain at least one uppercase letter",
            "NoDigits!!": "Password must contain at least one number",
            "NoSymbol12": "Password must contain at least one special character",
        }
        for password, message in cases.items():
            with self.subTest(password=password):
                _, errors = register(password=password, confirm_password=password)
                self.assertEqual(errors, {"password": message})

    def test_missing_confirmation(self):
        _, errors = register(confirm_password="")
        self.assertEqual(errors, {"confirm_password": "Please confirm your password"})

    def test_mismatch_reported_on_confirmation(self):
        form, errors = register(confirm_password="Str0ng!Pasz")
        self.assertIsNone(form)
        self.assertEqual(errors, {"confirm_password": "Passwords don't match"})

    def test_mismatch_reported_alongside_weak_password(self):
        _, errors = register(password="weak", confirm_password="other")
        self.assertEqual(errors["password"], "Password must be at least 8 characters long")
        self.assertEqual(errors["confirm_password"], "Passwords don't match")

    def test_omitted_fields_are_required(self):
        form, errors = validate_form(RegisterForm, {})
        self.assertIsNone(form)
        self.assertEqual(errors, {
            "name": "Name must be at least 2 characters long",
            "email": "Email is required",
            "password": "Password must be at least 8 characters long",
            "confirm_password": "Please confirm your password",
        })

    def test_first_error_per_field_only(self):
        _, errors = register(name="", email="", password="", confirm_password="")
        self.assertEqual(set(errors), {"name", "email", "password", "confirm_password"})
        self.assertTrue(all(isinstance(msg, str) for msg in errors.values()))


class TestLoginForm(unittest.TestCase):
    def test_valid_login(self):
        form, errors = validate_form(LoginForm, {"email": "jane@emetals.io", "password": "x"})
        self.assertEqual(errors, {})
        self.assertEqual(form.password, "x")

    def test_password_presence_and_bound(self):
        _, errors = validate_form(LoginForm, {"email": "jane@emetals.io", "password": ""})
        self.assertEqual(errors, {"password": "Password is required"})

        _, errors = validate_form(LoginForm, {"email": "jane@emetals.io", "password": "p" * 129})
        self.assertEqual(errors, {"password": "Password is too long"})

        form, errors = validate_form(LoginForm, {"email": "jane@emetals.io", "password": "p" * 128})
        self.assertEqual(errors, {})

    def test_missing_fields(self):
        _, errors = validate_form(LoginForm, {})
        self.assertEqual(errors, {"email": "Email is required", "password": "Password is required"})


class TestRecoveryForms(unittest.TestCase):
    def test_email_is_trimmed_and_lowercased(self):
        form, errors = validate_form(ForgotPasswordForm, {"email": "  Jane@Emetals.IO "})
        self.assertEqual(errors, {})
        self.assertEqual(form.email, "jane@emetals.io")

    def test_omitted_fields_are_required(self):
        form, errors = validate_form(ForgotPasswordForm, {})
        self.assertIsNone(form)
        self.assertEqual(errors, {"email": "Email is required"})

        form, errors = validate_form(ResetPasswordForm, {"password": "N3w!Passw"})
        self.assertIsNone(form)
        self.assertEqual(errors, {"confirm_password": "Please confirm your password"})

    def test_reset_form_uses_registration_password_rules(self):
        _, errors = validate_form(ResetPasswordForm, {"password": "nodigits!A", "confirm_password": "nodigits!A"})
        self.assertEqual(errors, {"password": "Password must contain at least one number"})

        form, errors = validate_form(ResetPasswordForm, {"password": "N3w!Passw", "confirm_password": "N3w!Passw"})
        self.assertEqual(errors, {})
        self.assertEqual(form.password, "N3w!Passw")


class TestOtp(unittest.TestCase):
    def test_otp_error(self):
        self.assertIsNone(otp_error("123456"))
        self.assertEqual(otp_error("12345"), "OTP must be exactly 6 digits")
        self.assertEqual(otp_error("1234567"), "OTP must be exactly 6 digits")
        self.assertEqual(otp_error("12a456"), "OTP must contain only numbers")
        self.assertEqual(otp_error(123456), "OTP must be exactly 6 digits")

    def test_otp_form(self):
        form, errors = validate_form(OtpForm, {"otp": "000111"})
        self.assertEqual(errors, {})
        self.assertEqual(form.otp, "000111")

        _, errors = validate_form(OtpForm, {"otp": "abcdef"})
        self.assertEqual(errors, {"otp": "OTP must contain only numbers"})

        form, errors = validate_form(OtpForm, {})
        self.assertIsNone(form)
        self.assertEqual(errors, {"otp": "OTP must be exactly 6 digits"})


if __name__ == "__main__":
    unittest.main()
