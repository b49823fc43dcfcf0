"""Long-running services"""
