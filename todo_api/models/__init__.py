from .task import Category, Recurrence, Task

# Export all models for easy importing
__all__ = ["Task", "Category", "Recurrence"]
