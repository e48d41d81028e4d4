import argparse
import sys

from PyQt5.QtCore import QCoreApplication, QTimer

from inkfind.config import SearchConfig
from inkfind.core.document import PageNavigator, PyMuPDFTextProvider
from inkfind.core.search import (
    FindController,
    FindEventBus,
    FindRequest,
    FindState,
    SearchHighlight,
)
from inkfind.utils.logger import configure_logger, get_logger

logger = get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="inkfind", description="Search the text of a PDF document."
    )
    parser.add_argument("file_path", help="PDF file to search")
    parser.add_argument("query", nargs="+", help="Text to look for")
    parser.add_argument("--phrases", action="store_true",
                        help="Treat every query argument as a separate phrase")
    parser.add_argument("-c", "--case-sensitive", action="store_true")
    parser.add_argument("-w", "--entire-word", action="store_true")
    parser.add_argument("-d", "--match-diacritics", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    """
    Run one search on a PDF and print every match.

    The controller runs on a Qt event loop exactly as it does inside the
    viewer; the loop quits once all pages have been scanned.
    """
    args = parse_args(argv)
    config = SearchConfig.from_env()
    configure_logger(config.log_level, config.log_file)

    app = QCoreApplication(sys.argv[:1])

    try:
        provider = PyMuPDFTextProvider.open(args.file_path)
    except Exception as e:
        logger.error("Error loading PDF: %s", e)
        return 1

    navigation = PageNavigator(provider.page_count)
    event_bus = FindEventBus()
    controller = FindController(navigation, event_bus, config=config)
    controller.set_document(provider)

    query = args.query if args.phrases else " ".join(args.query)
    if not "".join(args.query).strip():
        print("0 results")
        provider.close()
        return 1

    request = FindRequest(
        query=query,
        case_sensitive=args.case_sensitive,
        entire_word=args.entire_word,
        match_diacritics=args.match_diacritics,
        highlight_all=True,
    )

    def check_done():
        pages = range(provider.page_count)
        if all(controller.page_state(i) not in (FindState.IDLE, FindState.EXTRACTING,
                                                 FindState.PENDING) for i in pages):
            app.quit()
        else:
            QTimer.singleShot(10, check_done)

    event_bus.request_find(request)
    QTimer.singleShot(config.find_timeout_ms, check_done)
    app.exec_()

    total = 0
    for page_idx in range(provider.page_count):
        texts = SearchHighlight.get_highlighted_text(controller, page_idx)
        for result, text in zip(controller.page_matches(page_idx), texts):
            print(f"page {page_idx + 1}, offset {result.offset}: {text}")
        total += len(texts)

    print(f"{total} results ({controller.state.value})")
    provider.close()
    return 0 if total else 1


if __name__ == "__main__":
    sys.exit(main())
