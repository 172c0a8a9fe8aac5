def format_change(value):
    """Format a weight change with a sign and one decimal place."""
    if value is None:
        return "0.0"
    if value > 0:
        return f"+{value:.1f}"
    elif value < 0:
        return f"{value:.1f}"
    return "0.0"


def format_weight(value, unit="lbs"):
    if value is None:
        return "n/a"
    return f"{value:.1f} {unit}"


def format_date(value, fmt="%b %d, %Y"):
    if value is None:
        return ""
    return value.strftime(fmt)


def register_filters(app):
    """Register custom Jinja2 filters."""
    app.jinja_env.filters['format_change'] = format_change
    app.jinja_env.filters['format_weight'] = format_weight
    app.jinja_env.filters['format_date'] = format_date
