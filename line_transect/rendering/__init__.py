from .adapter import RenderingAdapter, print_ticks, push_styles

__all__ = ["RenderingAdapter", "print_ticks", "push_styles"]
