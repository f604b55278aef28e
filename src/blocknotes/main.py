# SPDX-License-Identifier: GPL-3.0-or-later

import sys

from blocknotes.logger import configure_logging


def main(argv=None):
    configure_logging()

    from blocknotes.application import BlockNotesApp
    app = BlockNotesApp()
    return app.run(sys.argv if argv is None else argv)


if __name__ == '__main__':
    sys.exit(main())
