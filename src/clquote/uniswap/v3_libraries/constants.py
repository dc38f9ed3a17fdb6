Q96_RESOLUTION = 96
Q96 = 1 << Q96_RESOLUTION
