# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

version = '0.1.0'
