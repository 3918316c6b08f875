import unittest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from emetals.middleware import create_route_guard_middleware
from emetals.route_guard import classify_path, evaluate, has_session_cookie, is_bypassed

SESSION = {"better-auth.session_token": "token-123"}


def make_app(**guard_options) -> FastAPI:
    app = FastAPI()
    app.middleware("http")(create_route_guard_middleware(**guard_options))

    @app.get("/{path:path}")
    async def page(path: str):
        return {"path": "/" + path}

    return app


class TestRouteClassification(unittest.TestCase):
    def test_classes(self):
        self.assertEqual(classify_path("/"), {"public"})
        self.assertEqual(classify_path("/login"), {"public", "auth"})
        self.assertEqual(classify_path("/verify-email"), {"auth"})
        self.assertEqual(classify_path("/about/team"), {"public"})
        self.assertEqual(classify_path("/admin/users"), {"protected", "admin"})
        self.assertEqual(classify_path("/settings"), {"protected"})
        self.assertEqual(classify_path("/pricing"), set())

    def test_prefix_match_requires_separator(self):
        self.assertEqual(classify_path("/dashboards"), set())
        self.assertEqual(classify_path("/login-help"), set())

    def test_bypass(self):
        for path in ("/api/v1/flows", "/_next/static/app.js", "/static/logo", "/favicon.ico", "/dashboard/report.pdf"):
            with self.subTest(path=path):
                self.assertTrue(is_bypassed(path))
        self.assertFalse(is_bypassed("/dashboard"))


class TestGuardDecisions(unittest.TestCase):
    def test_anonymous_protected_redirects_to_login(self):
        decision = evaluate("/dashboard", authenticated=False)
        self.assertTrue(decision.redirects)
        self.assertEqual(decision.location, "/login?callbackUrl=/dashboard")

    def test_anonymous_admin_keeps_full_path(self):
        decision = evaluate("/admin/anything", authenticated=False)
        self.assertEqual(decision.location, "/login?callbackUrl=/admin/anything")

    def test_signed_in_auth_route_redirects_to_dashboard(self):
        for path in ("/login", "/register", "/forgot-password", "/reset-password", "/verify-email"):
            with self.subTest(path=path):
                decision = evaluate(path, authenticated=True)
                self.assertEqual(decision.action, "redirect")
                self.assertEqual(decision.location, "/dashboard")

    def test_allowed(self):
        self.assertEqual(evaluate("/login", authenticated=False).action, "allow")
        self.assertEqual(evaluate("/", authenticated=True).action, "allow")
        self.assertEqual(evaluate("/admin", authenticated=True).action, "allow")
        self.assertEqual(evaluate("/pricing", authenticated=False).action, "allow")

    def test_bypassed_paths_are_never_redirected(self):
        self.assertEqual(evaluate("/api/auth/get-session", authenticated=False).action, "bypass")
        self.assertEqual(evaluate("/dashboard/export.csv", authenticated=False).action, "bypass")


class TestSessionCookie(unittest.TestCase):
    def test_default_cookie_names(self):
        self.assertTrue(has_session_cookie(SESSION))
        self.assertTrue(has_session_cookie({"__Secure-better-auth.session_token": "abc"}))

    def test_empty_or_foreign_cookie(self):
        self.assertFalse(has_session_cookie({}))
        self.assertFalse(has_session_cookie({"better-auth.session_token": ""}))
        self.assertFalse(has_session_cookie({"session_token": "abc"}))

    def test_custom_name_and_prefix(self):
        cookies = {"myapp.sid": "abc"}
        self.assertTrue(has_session_cookie(cookies, cookie_name="sid", cookie_prefix="myapp"))
        self.assertFalse(has_session_cookie(cookies))


class TestRouteGuardMiddleware(unittest.TestCase):
    def test_redirects_anonymous_visitor(self):
        client = TestClient(make_app())
        res = client.get("/admin/anything", follow_redirects=False)
        self.assertEqual(res.status_code, 307)
        self.assertEqual(res.headers["location"], "/login?callbackUrl=/admin/anything")

    def test_redirects_signed_in_visitor_away_from_login(self):
        client = TestClient(make_app(), cookies=SESSION)
        res = client.get("/login", follow_redirects=False)
        self.assertEqual(res.status_code, 307)
        self.assertEqual(res.headers["location"], "/dashboard")

    def test_passes_through(self):
        client = TestClient(make_app(), cookies=SESSION)
        res = client.get("/dashboard")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"path": "/dashboard"})

        anonymous = TestClient(make_app())
        res = anonymous.get("/api/v1/anything")
        self.assertEqual(res.status_code, 200)

    def test_security_headers(self):
        client = TestClient(make_app(security_headers=True), cookies=SESSION)
        res = client.get("/dashboard")
        self.assertEqual(res.headers["x-frame-options"], "DENY")
        self.assertEqual(res.headers["x-content-type-options"], "nosniff")
        self.assertEqual(res.headers["referrer-policy"], "strict-origin-when-cross-origin")
        self.assertEqual(res.headers["x-user-authenticated"], "true")

        anonymous = TestClient(make_app(security_headers=True))
        res = anonymous.get("/")
        self.assertEqual(res.headers["x-frame-options"], "DENY")
        self.assertNotIn("x-user-authenticated", res.headers)

    def test_no_security_headers_by_default(self):
        res = TestClient(make_app()).get("/")
        self.assertNotIn("x-frame-options", res.headers)

    def test_custom_cookie(self):
        client = TestClient(make_app(cookie_name="sid", cookie_prefix="myapp"), cookies={"myapp.sid": "abc"})
        res = client.get("/dashboard", follow_redirects=False)
        self.assertEqual(res.status_code, 200)


if __name__ == "__main__":
    unittest.main()
