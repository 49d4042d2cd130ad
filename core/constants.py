"""
Constants and configuration values for the figure capture workflow.
"""

# Crop tag emitted by the OCR model: [CROP: ymin, xmin, ymax, xmax | Caption]
# Tolerates extra whitespace, lowercase keyword and a missing caption.
CROP_TAG_PATTERN = (
    r'\[CROP[:\s]+\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*'
    r'(?:\|\s*(.*?))?\]'
)

# Embedded figure reference written back into the notes
FIG_CAPTURE_TEMPLATE = '\n[FIG_CAPTURE: {image_id} | {caption}]\n'
FIG_CAPTURE_PATTERN = r'\[FIG_CAPTURE:\s*([^\s|\]]+)\s*\|\s*(.*?)\]'

# Plain-text fallback used when a figure could not be cropped
CAPTION_FALLBACK_TEMPLATE = '\n*[Figure: {caption}]*\n'

DEFAULT_CAPTION = 'Figure'

# Normalized coordinate space used by the OCR model
NORMALIZED_SCALE = 1000

# Figure pipeline thresholds
DEFAULT_FIGURE_PARAMS = {
    # Scale-aware margins (pixels)
    'margin_ratio': 0.10,
    'min_margin_px': 24,
    'max_margin_px': 120,

    # Clustering (normalized units)
    'cluster_iou': 0.05,
    'cluster_gap': 50.0,

    # Size floors (pixels)
    'min_dim_px': 48,
    'min_area_px2': 48 * 48,

    # Non-maximum suppression
    'nms_iou': 0.85,
    'nms_center_dist': 30.0,

    # Perceptual hash / crop encoding
    'hash_grid': 16,
    'jpeg_quality': 90,
}

# OCR prompt templates
OCR_PROMPTS = {
    'study_notes': (
        "You are a study notes OCR expert.\n"
        "1. Extract all text from this image. Use Markdown headings.\n"
        "2. **IMPORTANT**: For ANY mathematical formula, equation, or variable, "
        "you MUST use STANDARD LaTeX delimiters:\n"
        "   - Use \\( ... \\) for inline math.\n"
        "   - Use \\[ ... \\] for block/display math.\n"
        "   - **DO NOT** use dollar signs ($ or $$).\n"
        "   - Escape backslashes exactly once (e.g. \\alpha, not \\\\alpha).\n"
        "3. IF you see a diagram, figure, chart, or graph:\n"
        "   - Identify its bounding box coordinates [ymin, xmin, ymax, xmax] "
        "on a scale of 0-1000.\n"
        "   - Provide a short caption/description.\n"
        "   - Output the specific tag: [CROP:ymin,xmin,ymax,xmax|Description].\n"
        "   - Do NOT simply describe it in text if you use the CROP tag. "
        "Use the CROP tag so the system can extract the visual.\n"
        "4. **FORMATTING**: For multi-line equations, use the aligned environment. "
        "DO NOT use array with '@' separator hacks.\n"
        "\n"
        "Output clean markdown notes."
    ),
    'free_ocr': 'Free OCR.',
}

OCR_SYSTEM_INSTRUCTION = (
    "You are a specialized OCR tool. Priority: Accurate text, standard LaTeX "
    "delimiters (\\(..\\), \\[..\\]), and identifying visual regions."
)

# Default OCR parameters
DEFAULT_OCR_PARAMS = {
    'max_tokens': 8192,
    'temperature': 0.0,
    'max_retries': 3,
}

# Markdown block returned in place of a page that failed to process
PAGE_ERROR_TEMPLATE = '\n\n> ⚠️ **Processing Error:** {message}\n\n'
