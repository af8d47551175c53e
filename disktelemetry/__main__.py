# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import sys

from .cli import main

sys.exit(main())
