from numba import jit

# --- PALETTE LAYOUT ---
# 0-15 and 217-255 are left unused by the ramp.
PALETTE_SIZE = 256
INTERIOR_COLOR = 16     # black, points that never escaped
RAMP_START = 17
RAMP_STEPS = 200        # escaped points land in 17..216


@jit(nopython=True, nogil=True)
def iteration_to_color(n, max_iter):
    """
    Quantize an iteration count into a palette index.

    Interior points (n >= max_iter) get INTERIOR_COLOR, everything else a
    linear step on the 200-entry ramp. Non-decreasing in n.
    """
    if n >= max_iter:
        return INTERIOR_COLOR
    return RAMP_START + (n * RAMP_STEPS) // max_iter
