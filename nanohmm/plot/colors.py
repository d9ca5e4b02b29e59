"""
Color constants for nanohmm plotting.
"""

# =============================================================================
# NUCLEOTIDE COLORS
# =============================================================================

NT_COLOR = {
    "A": "#74AB86",  # soft green
    "C": "#6E93C0",  # soft blue
    "G": "#C19A5A",  # soft warm ochre
    "T": "#C26F6F",  # soft red
    "": "#000000",
}


# =============================================================================
# PROFILE STATE COLORS
# =============================================================================

STATE_COLORS = dict(
    M="#4285C7",  # steel blue
    E="#9BBF4C",  # yellow-green
    K="#A058C7",  # violet
)


# =============================================================================
# HEATMAP COLORMAPS
# =============================================================================
HEATMAP_COLORMAPS = {
    'default': 'Reds',
    'sequential': 'viridis',
}
