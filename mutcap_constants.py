"""
Constants used throughout the capacitance pipeline.

Centralizes physical constants, unit conversions and default values.
"""

# Physical constants
VACUUM_PERMITTIVITY = 8.854e-12       # F/m

# Unit conversions
MM_PER_INCH = 25.4
MM2_TO_M2 = 1e-6
MM_TO_M = 1e-3
ATTOFARAD = 1e-18                     # sort key resolution for reported capacitances
PICOFARAD = 1e-12

# Net registry
UNCONNECTED_NET_NAME = 'N/C'          # always registered first, id 0
NET_ATTRIBUTE_NAME = '.N'             # Gerber X2 object attribute carrying the net name

# Gerber defaults when a file omits the corresponding command
DEFAULT_COORDINATE_DIGITS = 46        # FSLAX46Y46
DEFAULT_UNIT_SCALE = 1.0              # millimeters

# Component images
PALETTE_SEED = 1                      # xorwow seed shared by all layer palettes
XORWOW_WARMUP = 1024                  # draws discarded after seeding

# Raster
MAX_LAYERS = 64                       # one bit per layer in a uint64 word
VISITED_WORD_BITS = 64                # flood fill visited bitset word size

# Output file names
NET_REPORT_TEMPLATE = 'nets-{index}-{name}.txt'
MATCH_REPORT_TEMPLATE = 'net-match-{index}-{name}.txt'
NET_LISTING_NAME = 'nets.txt'
MUTCAPS_REPORT_NAME = 'mutcaps.txt'
LAYER_IMAGE_TEMPLATE = 'layc{number}.png'
