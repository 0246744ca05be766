"""
Digest email delivery over SMTP.
Renders scored articles into an HTML (plus plain-text) email.
"""

import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from jinja2 import Template

from src.models import DigestArticle, DigestData

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 300
SSL_PORT = 465

EDITION_LABELS = {"morning": "Morning Edition", "evening": "Evening Edition"}


EMAIL_TEMPLATE = Template(
    """\
<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
  body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, sans-serif;
         line-height: 1.6; color: #333; max-width: 800px; margin: 0 auto; padding: 20px; background-color: #f5f5f5; }
  .header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white;
            padding: 30px; border-radius: 10px; margin-bottom: 30px; text-align: center; }
  .header h1 { margin: 0 0 10px 0; font-size: 32px; }
  .header p { margin: 0; font-size: 16px; opacity: 0.9; }
  .summary { background: white; padding: 20px; border-radius: 8px; margin-bottom: 20px; border-left: 4px solid #667eea; }
  .article { background: white; padding: 25px; margin-bottom: 20px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
  .article-header { margin-bottom: 10px; font-size: 14px; }
  .score { background: #667eea; color: white; padding: 4px 12px; border-radius: 12px; font-weight: 600; }
  .source { color: #666; font-style: italic; margin-left: 8px; }
  .article-number { margin: 10px 0; color: #2c3e50; }
  .article-number a { color: #2c3e50; text-decoration: none; }
  .author { color: #666; font-size: 14px; margin: 5px 0; }
  .description { color: #555; margin: 15px 0; }
  .topic { display: inline-block; background: #e3f2fd; color: #1976d2; padding: 4px 12px;
           border-radius: 12px; margin-right: 8px; margin-bottom: 8px; font-size: 13px; }
  .reasoning { background: #f9f9f9; padding: 15px; border-radius: 6px; margin: 15px 0; font-size: 14px; color: #555; }
  .suggested-response { background: #e8f5e9; border: 2px solid #4caf50; border-radius: 8px; padding: 15px; margin: 15px 0; }
  .response-header { font-weight: 600; color: #2e7d32; margin-bottom: 10px; font-size: 14px; }
  .response-text { background: white; padding: 12px; border-radius: 6px; font-size: 14px; user-select: all; }
  .read-more a { color: #667eea; text-decoration: none; font-weight: 600; }
  .footer { text-align: center; padding: 20px; color: #666; font-size: 14px; }
</style>
</head>
<body>
  <div class="header">
    <h1>Tech News Digest</h1>
    <p>{{ edition }} - {{ date_label }}</p>
  </div>

  <div class="summary">
    <strong>{{ articles|length }} relevant article{{ '' if articles|length == 1 else 's' }} worth your attention</strong>
    <p style="margin: 10px 0 0 0; color: #666;">AI-curated content matching your interests in tech, AI, and development</p>
  </div>

  {% for article in articles %}
  <div class="article">
    <div class="article-header">
      <span class="score">Score: {{ "%.1f"|format(article.relevance_score) }}/10</span>
      <span class="source">{{ article.source_name }}</span>
    </div>
    <h2 class="article-number">{{ loop.index }}. <a href="{{ article.url }}">{{ article.title }}</a></h2>
    {% if article.author %}<p class="author">By {{ article.author }}</p>{% endif %}
    {% if article.description %}<p class="description">{{ article.description|truncate(description_limit, True, "...", 0) }}</p>{% endif %}
    <div class="topics">
      {% for topic in article.topics %}<span class="topic">{{ topic }}</span>{% endfor %}
    </div>
    <p class="reasoning"><strong>Why it matters:</strong> {{ article.reasoning }}</p>
    {% if article.suggested_response %}
    <div class="suggested-response">
      <div class="response-header">Suggested Comment (select &amp; copy):</div>
      <div class="response-text">{{ article.suggested_response }}</div>
    </div>
    {% endif %}
    <p class="read-more"><a href="{{ article.url }}">Read full article &rarr;</a></p>
  </div>
  {% endfor %}

  <div class="footer">
    <p>Generated by Tech News Aggregator</p>
    <p>Powered by AI Analysis</p>
  </div>
</body>
</html>
""",
    autoescape=True,
)


def format_date(value: datetime) -> str:
    """e.g. 'Monday, March 2, 2026'."""
    return f"{value:%A}, {value:%B} {value.day}, {value.year}"


def sort_articles(articles: list[DigestArticle]) -> list[DigestArticle]:
    return sorted(articles, key=lambda a: a.relevance_score, reverse=True)


def build_subject(data: DigestData) -> str:
    edition = "Morning" if data.type == "morning" else "Evening"
    return f"Tech News Digest - {edition} Edition ({len(data.articles)} articles)"


def render_digest(data: DigestData) -> str:
    return EMAIL_TEMPLATE.render(
        articles=sort_articles(data.articles),
        edition=EDITION_LABELS.get(data.type, "Evening Edition"),
        date_label=format_date(data.date),
        description_limit=DESCRIPTION_LIMIT,
    )


def render_digest_text(data: DigestData) -> str:
    """Plain-text alternative, also used for dry runs."""
    lines = [
        f"Tech News Digest - {EDITION_LABELS.get(data.type, 'Evening Edition')} - {format_date(data.date)}",
        f"{len(data.articles)} relevant articles",
        "",
    ]
    for idx, article in enumerate(sort_articles(data.articles), start=1):
        lines.append(f"{idx}. [{article.relevance_score:.1f}/10] {article.title} ({article.source_name})")
        lines.append(f"   {article.url}")
        if article.topics:
            lines.append(f"   Topics: {', '.join(article.topics)}")
        if article.reasoning:
            lines.append(f"   Why it matters: {article.reasoning}")
        if article.suggested_response:
            lines.append(f"   Suggested comment: {article.suggested_response}")
        lines.append("")
    return "\n".join(lines)


class DigestEmailer:
    """Sends rendered digests through an SMTP submission server."""

    def __init__(self, host: str, port: int, user: str, password: str, to_email: str,
                 from_email: str | None = None):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.to_email = to_email
        self.from_email = from_email or user

    def build_message(self, data: DigestData) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = build_subject(data)
        msg["From"] = self.from_email
        msg["To"] = self.to_email
        msg.attach(MIMEText(render_digest_text(data), "plain", "utf-8"))
        msg.attach(MIMEText(render_digest(data), "html", "utf-8"))
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.port == SSL_PORT:
            return smtplib.SMTP_SSL(self.host, self.port)
        server = smtplib.SMTP(self.host, self.port)
        server.starttls()
        return server

    def send_digest(self, data: DigestData) -> bool:
        """Send the digest. Returns True only if the SMTP transaction succeeded."""
        try:
            msg = self.build_message(data)
            recipients = [r.strip() for r in self.to_email.split(",") if r.strip()]
            with self._connect() as server:
                server.login(self.user, self.password)
                server.sendmail(self.from_email, recipients, msg.as_string())
        except Exception as e:
            logger.error(f"[EMAIL] Error sending digest email: {e}")
            return False

        logger.info(f"[EMAIL] Successfully sent {data.type} digest with {len(data.articles)} articles")
        return True
