# Copyright 2018-2021 The glTF-Blender-IO authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

#
# Imports
#

import logging
import logging.handlers
import threading

#
# Globals
#

LOGGER_NAME = 'glTFLoader'
LOG_FORMAT = '%(asctime)s %(levelname)s %(message)s'
CONSOLE_HANDLER_NAME = 'glTFLoader.console'

# Capacity of the buffer of messages reported back to the caller
REPORT_CAPACITY = 1024*10

_console_lock = threading.Lock()


def console_handler(logger):
    """Console handler of logger, added on first use and shared by every load."""
    with _console_lock:
        for handler in logger.handlers:
            if handler.get_name() == CONSOLE_HANDLER_NAME:
                return handler
        handler = logging.StreamHandler()
        handler.set_name(CONSOLE_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        return handler


class Log:
    """
    Logger of one load.

    Every message goes to the console handler. There is a single one per
    logger, which stays attached once the load is over: messages of lazily
    materialized buffers still reach it. Messages flagged with popup=True
    are also kept, as (level name, message) pairs, in a memory buffer that the
    caller reads once loading is over: non fatal problems, mostly.
    """

    def __init__(self, loglevel, name=LOGGER_NAME):
        self.logger = logging.getLogger(name)
        self.console_handler = console_handler(self.logger)

        # Never attached to the logger: records only land here through _log
        self.report_handler = logging.handlers.MemoryHandler(REPORT_CAPACITY)

        self.logger.setLevel(int(loglevel))

    def _log(self, level, message, popup):
        self.logger.log(level, message)
        if popup:
            self.report_handler.buffer.append((logging.getLevelName(level), message))

    def warning(self, message, popup=False):
        self._log(logging.WARNING, message, popup)

    def info(self, message, popup=False):
        self._log(logging.INFO, message, popup)

    def debug(self, message, popup=False):
        self._log(logging.DEBUG, message, popup)

    def report(self, error, what="Ignoring"):
        """Log a recovered GltfImportError as a reported warning."""
        self.warning("%s %s" % (what, error), popup=True)

    def messages(self):
        return list(self.report_handler.buffer)

    def flush(self):
        self.report_handler.flush()
