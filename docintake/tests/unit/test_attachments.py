"""Unit tests for attachment batching and the SMTP mailer."""

import smtplib
from unittest.mock import MagicMock, patch

import httpx
import pytest

from docintake.core.errors import DeliveryError
from docintake.core.models import AttachmentFile, SignedDownloadLink
from docintake.processors.attachments import (
    AttachmentBatcher,
    batch_subject,
    build_batches,
    plan_batches,
)
from docintake.services.files import FileResolver
from docintake.services.mailer import Mailer, render_body

MB = 1024 * 1024


def make_file(name: str, size: int, path: str = "") -> AttachmentFile:
    return AttachmentFile(filename=name, local_path=path or f"/tmp/{name}", size_bytes=size)


def names(batches) -> list[list[str]]:
    return [[f.filename for f in b.files] for b in batches]


class TestPlanBatches:
    def test_groups_and_skips_oversize(self):
        files = [
            make_file("a", 1 * MB),
            make_file("b", 1 * MB),
            make_file("c", 3 * MB),
            make_file("d", MB // 2),
        ]

        plan = plan_batches(files, 2 * MB)

        assert names(plan.batches) == [["a", "b"], ["d"]]
        assert [f.filename for f in plan.skipped] == ["c"]
        assert plan.total_attachments == 3

    def test_batch_may_reach_limit_exactly(self):
        files = [make_file("a", 60), make_file("b", 40), make_file("c", 1)]
        assert names(build_batches(files, 100)) == [["a", "b"], ["c"]]

    def test_file_equal_to_limit_is_sent(self):
        plan = plan_batches([make_file("a", 100)], 100)
        assert names(plan.batches) == [["a"]]
        assert plan.skipped == []

    def test_preserves_order_without_reordering_for_fit(self):
        files = [make_file("a", 70), make_file("b", 70), make_file("c", 30)]
        assert names(build_batches(files, 100)) == [["a"], ["b", "c"]]

    def test_every_batch_within_limit(self):
        sizes = [5, 17, 3, 40, 22, 9, 31, 2, 50, 11]
        files = [make_file(str(i), s) for i, s in enumerate(sizes)]

        batches = build_batches(files, 50)

        assert all(b.size_bytes <= 50 for b in batches)
        assert [f.filename for b in batches for f in b.files] == [str(i) for i in range(len(sizes))]

    def test_empty_input(self):
        plan = plan_batches([], 100)
        assert plan.batches == []
        assert plan.total_attachments == 0


def test_batch_subject():
    assert batch_subject("Docs", 1, 1) == "Docs"
    assert batch_subject("Docs", 2, 3) == "Docs (2/3)"


def test_render_body_escapes():
    body = render_body("A & B", "<script>", 2)
    assert "A &amp; B" in body
    assert "&lt;script&gt;" in body
    assert "Attachments: 2" in body


class TestDispatch:
    @pytest.fixture
    def mailer(self):
        mailer = MagicMock(spec=Mailer)
        mailer.send.side_effect = lambda to, subject, body, files: f"<{subject}@example.com>"
        return mailer

    def test_sends_each_batch_with_numbered_subject(self, mailer):
        sleeps = []
        batcher = AttachmentBatcher(files=MagicMock(), mailer=mailer, max_batch_bytes=100,
                                    batch_delay=2.0, sleep=sleeps.append)
        batches = build_batches([make_file("a", 80), make_file("b", 80)], 100)

        result = batcher.dispatch(batches, "office@example.com", "Docs", "See attached")

        subjects = [c.args[1] for c in mailer.send.call_args_list]
        assert subjects == ["Docs (1/2)", "Docs (2/2)"]
        assert result.sent == 2
        assert result.total_attachments == 2
        assert sleeps == [2.0]

    def test_single_batch_has_plain_subject(self, mailer):
        batcher = AttachmentBatcher(files=MagicMock(), mailer=mailer, sleep=lambda s: None)
        batcher.dispatch(build_batches([make_file("a", 1)], 100), "to@example.com", "Docs", "x")

        assert mailer.send.call_args.args[1] == "Docs"

    def test_stops_at_first_failure(self, mailer):
        mailer.send.side_effect = [
            "<1@example.com>",
            DeliveryError("Failed to send email: 552"),
            "<3@example.com>",
        ]
        batcher = AttachmentBatcher(files=MagicMock(), mailer=mailer, max_batch_bytes=10,
                                    sleep=lambda s: None)
        batches = build_batches([make_file(n, 10) for n in "abc"], 10)

        with pytest.raises(DeliveryError, match="552"):
            batcher.dispatch(batches, "to@example.com", "Docs", "x")
        assert mailer.send.call_count == 2


class TestDownloadAll:
    def test_keeps_order_and_drops_failures(self, fake_hubspot, tmp_path):
        def handler(request):
            if "bad" in request.url.path:
                return httpx.Response(500)
            return httpx.Response(200, content=request.url.path.encode())

        files = FileResolver(
            hubspot=fake_hubspot,
            http=httpx.Client(transport=httpx.MockTransport(handler)),
            temp_dir=str(tmp_path),
        )
        batcher = AttachmentBatcher(files=files, mailer=MagicMock())
        links = [
            SignedDownloadLink(url="https://f.example.com/one.pdf", file_id="1"),
            SignedDownloadLink(url="https://f.example.com/bad.pdf", file_id="2"),
            SignedDownloadLink(url="https://f.example.com/three.png", file_id="3"),
        ]

        downloaded = batcher.download_all(links)

        assert [f.filename for f in downloaded] == ["document_1.pdf", "document_3.png"]
        assert downloaded[0].size_bytes == len(b"/one.pdf")

        assert AttachmentBatcher.cleanup(downloaded) == 2
        assert list(tmp_path.iterdir()) == []

    def test_no_links(self):
        assert AttachmentBatcher(files=MagicMock(), mailer=MagicMock()).download_all([]) == []


class TestMailer:
    @pytest.fixture
    def mailer(self):
        return Mailer(host="smtp.example.com", port=465, user="reports@example.com",
                      password="secret", use_ssl=True, sender="reports@example.com")

    def test_send_over_ssl(self, mailer, tmp_path):
        doc = tmp_path / "document_1.pdf"
        doc.write_bytes(b"%PDF-1.4")
        attachment = AttachmentFile("document_1.pdf", str(doc), 8)

        with patch("docintake.services.mailer.smtplib.SMTP_SSL") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            message_id = mailer.send("office@example.com", "Docs", "<p>hi</p>", [attachment])

        server.login.assert_called_once_with("reports@example.com", "secret")
        sent = server.send_message.call_args.args[0]
        assert sent["To"] == "office@example.com"
        assert sent["Message-ID"] == message_id
        parts = list(sent.iter_attachments())
        assert [p.get_filename() for p in parts] == ["document_1.pdf"]
        assert parts[0].get_content_type() == "application/pdf"

    def test_send_with_starttls(self, mailer):
        mailer.use_ssl = False
        with patch("docintake.services.mailer.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            mailer.send("office@example.com", "Docs", "<p>hi</p>")

        server.starttls.assert_called_once()
        server.send_message.assert_called_once()

    def test_smtp_failure_raises_delivery_error(self, mailer):
        with patch("docintake.services.mailer.smtplib.SMTP_SSL") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            server.send_message.side_effect = smtplib.SMTPDataError(552, b"too big")
            with pytest.raises(DeliveryError):
                mailer.send("office@example.com", "Docs", "<p>hi</p>")

    def test_missing_attachment_raises_delivery_error(self, mailer, tmp_path):
        missing = AttachmentFile("gone.pdf", str(tmp_path / "gone.pdf"), 1)
        with pytest.raises(DeliveryError, match="attachment"):
            mailer.send("office@example.com", "Docs", "<p>hi</p>", [missing])

    def test_unconfigured(self):
        mailer = Mailer(sender="x@example.com")
        mailer.host = mailer.user = mailer.password = ""
        assert mailer.enabled is False
        with pytest.raises(DeliveryError, match="configuration"):
            mailer.send("office@example.com", "Docs", "<p>hi</p>")
