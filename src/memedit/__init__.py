# Copyright (c) 2021, Andrea Zoppi. All rights reserved.
#
# This file is part of Memedit.
#
# Memedit is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Memedit is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with Memedit.  If not, see <https://www.gnu.org/licenses/>.

r"""Immediate mode memory editor widget.

The :class:`memedit.widget.MemoryEditor` draws a hexadecimal view of a
borrowed byte buffer onto any :class:`memedit.common.BaseSurface`; a Tk
surface is provided by :mod:`memedit.tkgui`.
"""

__version__ = '0.1.0'
