from PyQt6.QtCore import QThread, pyqtSignal

from core.document import ContentTicket
from core.logger import get_logger
from core.rendering import MarkupRenderer

logger = get_logger("gui.workers")


class RenderWorker(QThread):
    """
    Worker thread converting page markdown to HTML in the background.
    The ticket travels with the result so the receiver can drop it if the
    window moved on to another entry or page meanwhile.
    """
    finished_render = pyqtSignal(object, str)  # ticket, html
    failed = pyqtSignal(object, str)  # ticket, error message

    def __init__(self, renderer: MarkupRenderer, ticket: ContentTicket, text: str):
        super().__init__()
        self.renderer = renderer
        self.ticket = ticket
        self.text = text

    def run(self):
        try:
            html = self.renderer.render(self.text)
        except Exception as e:
            logger.error(f"Rendering page {self.ticket.page_index} of {self.ticket.entry_id} failed: {e}")
            self.failed.emit(self.ticket, str(e))
            return
        self.finished_render.emit(self.ticket, html)
