from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from order_pipeline.errors import InternalError
from order_pipeline.receipt import Receipt

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = letter
MARGIN = 70


class PdfDocumentStore:
    """Writes order confirmations as `order_<orderId>.pdf` into a directory."""

    def __init__(self, directory: Path, application_name: str = "OWASP Juice Shop"):
        self.directory = Path(directory)
        self.application_name = application_name

    def path_for(self, order_id: str) -> Path:
        return self.directory / os.path.basename(f"order_{order_id}.pdf")

    def write(self, order_id: str, receipt: Receipt) -> Path:
        target = self.path_for(order_id)
        self.directory.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        try:
            self._render(partial, receipt)
            os.replace(partial, target)
        finally:
            partial.unlink(missing_ok=True)
        return target

    def discard(self, order_id: str) -> None:
        self.path_for(order_id).unlink(missing_ok=True)

    def _render(self, path: Path, receipt: Receipt) -> None:
        pdf = canvas.Canvas(str(path), pagesize=letter)
        pdf.setTitle(f"Order {receipt.order_id}")

        pdf.setFont("Times-Roman", 40)
        pdf.drawCentredString(PAGE_WIDTH / 2, PAGE_HEIGHT - 100, self.application_name)
        pdf.line(MARGIN, PAGE_HEIGHT - 115, PAGE_WIDTH - MARGIN, PAGE_HEIGHT - 115)
        pdf.line(MARGIN, PAGE_HEIGHT - 120, PAGE_WIDTH - MARGIN, PAGE_HEIGHT - 120)

        pdf.setFont("Times-Roman", 20)
        pdf.drawCentredString(PAGE_WIDTH / 2, PAGE_HEIGHT - 160, "Order Confirmation")

        y = PAGE_HEIGHT - 210
        pdf.setFont("Times-Roman", 15)
        for text in (
            f"Customer: {receipt.email}",
            f"Order #: {receipt.order_id}",
            f"Date: {receipt.date.isoformat()}",
        ):
            pdf.drawString(MARGIN, y, text)
            y -= 22
        y -= 22

        for text in receipt.text_lines():
            if y < MARGIN:
                pdf.showPage()
                pdf.setFont("Times-Roman", 15)
                y = PAGE_HEIGHT - MARGIN
            bold = text.startswith(("Total Price", "Bonus Points"))
            pdf.setFont("Helvetica-Bold" if bold else "Times-Roman", 15)
            pdf.drawString(MARGIN, y, text)
            y -= 24
        pdf.save()


def write_with_timeout(documents: PdfDocumentStore, order_id: str, receipt: Receipt, timeout: float) -> Path:
    """Run a blocking document write, turning failures and overruns into InternalError."""
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="receipt")
    future = executor.submit(documents.write, order_id, receipt)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as e:
        # the worker keeps running; drop whatever it eventually writes
        future.add_done_callback(lambda _: documents.discard(order_id))
        raise InternalError(f"Writing receipt for order {order_id} timed out after {timeout}s") from e
    except OSError as e:
        raise InternalError(f"Writing receipt for order {order_id} failed: {e}") from e
    finally:
        executor.shutdown(wait=False)
