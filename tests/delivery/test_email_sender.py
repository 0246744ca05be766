import unittest
from datetime import datetime
from unittest.mock import MagicMock, patch

from src.delivery.email_sender import (
    DigestEmailer,
    build_subject,
    format_date,
    render_digest,
    render_digest_text,
)
from src.models import DigestArticle, DigestData


def _article(title, score, **kwargs):
    return DigestArticle(
        title=title,
        url=f"https://example.com/{title.lower().replace(' ', '-')}",
        relevance_score=score,
        source_name=kwargs.pop("source_name", "HackerNews"),
        topics=kwargs.pop("topics", ["AI"]),
        reasoning=kwargs.pop("reasoning", "Worth reading"),
        **kwargs,
    )


DATE = datetime(2026, 3, 2, 9, 0)


class TestRendering(unittest.TestCase):

    def setUp(self):
        self.data = DigestData(
            articles=[
                _article("Low Score", 7.2),
                _article("High Score", 9.5, suggested_response="Great take on evals.", author="Ada"),
            ],
            type="morning",
            date=DATE,
        )

    def test_subject(self):
        self.assertEqual(build_subject(self.data), "Tech News Digest - Morning Edition (2 articles)")

    def test_format_date(self):
        self.assertEqual(format_date(DATE), "Monday, March 2, 2026")

    def test_html_orders_by_score_and_shows_details(self):
        html = render_digest(self.data)
        self.assertLess(html.index("High Score"), html.index("Low Score"))
        self.assertIn("Morning Edition - Monday, March 2, 2026", html)
        self.assertIn("Score: 9.5/10", html)
        self.assertIn("By Ada", html)
        self.assertIn("Great take on evals.", html)
        self.assertIn("2 relevant articles worth your attention", html)

    def test_html_escapes_article_text(self):
        data = DigestData(articles=[_article("<script>x</script>", 8)], type="evening", date=DATE)
        html = render_digest(data)
        self.assertNotIn("<script>x</script>", html)
        self.assertIn("&lt;script&gt;", html)
        self.assertIn("1 relevant article worth", html)

    def test_long_description_is_truncated(self):
        data = DigestData(articles=[_article("Long", 8, description="word " * 200)], type="evening", date=DATE)
        html = render_digest(data)
        self.assertIn("...", html)
        self.assertNotIn("word " * 100, html)

    def test_text_rendering(self):
        text = render_digest_text(self.data)
        self.assertTrue(text.startswith("Tech News Digest - Morning Edition - Monday, March 2, 2026"))
        self.assertIn("1. [9.5/10] High Score (HackerNews)", text)
        self.assertIn("Suggested comment: Great take on evals.", text)


class TestDigestEmailer(unittest.TestCase):

    def setUp(self):
        self.data = DigestData(articles=[_article("One", 8)], type="evening", date=DATE)

    @patch("src.delivery.email_sender.smtplib.SMTP")
    def test_send_uses_starttls_on_587(self, smtp_cls):
        server = smtp_cls.return_value.__enter__.return_value = smtp_cls.return_value
        emailer = DigestEmailer("smtp.example", 587, "me@example.com", "pw", "a@example.com, b@example.com")

        self.assertTrue(emailer.send_digest(self.data))
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("me@example.com", "pw")
        from_addr, recipients, body = server.sendmail.call_args.args
        self.assertEqual(from_addr, "me@example.com")
        self.assertEqual(recipients, ["a@example.com", "b@example.com"])
        self.assertIn("Tech News Digest - Evening Edition (1 articles)", body)

    @patch("src.delivery.email_sender.smtplib.SMTP_SSL")
    def test_send_uses_ssl_on_465(self, ssl_cls):
        server = ssl_cls.return_value.__enter__.return_value = ssl_cls.return_value
        emailer = DigestEmailer("smtp.example", 465, "me@example.com", "pw", "a@example.com",
                                from_email="digest@example.com")

        self.assertTrue(emailer.send_digest(self.data))
        self.assertEqual(server.sendmail.call_args.args[0], "digest@example.com")

    @patch("src.delivery.email_sender.smtplib.SMTP")
    def test_send_failure_returns_false(self, smtp_cls):
        smtp_cls.return_value.login.side_effect = Exception("auth failed")
        smtp_cls.return_value.__enter__.return_value = smtp_cls.return_value
        emailer = DigestEmailer("smtp.example", 587, "me@example.com", "pw", "a@example.com")

        self.assertFalse(emailer.send_digest(self.data))

    def test_message_has_text_and_html_parts(self):
        emailer = DigestEmailer("smtp.example", 587, "me@example.com", "pw", "a@example.com")
        msg = emailer.build_message(self.data)
        types = [part.get_content_type() for part in msg.get_payload()]
        self.assertEqual(types, ["text/plain", "text/html"])


if __name__ == "__main__":
    unittest.main()
