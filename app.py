"""Application entry point for the AcademyDesk web UI."""

import logging

from academydesk.webapp import create_app

app = create_app()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run(debug=True)
