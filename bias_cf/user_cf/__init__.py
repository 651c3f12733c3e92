"""Bias-aware user-user collaborative filtering.

Pipeline:
- Fit a global mean plus per-user and per-item biases (sequential gradient passes)
- Index bias-corrected residuals by item
- Score user pairs with shrunk, case-amplified cosine over residuals
- Keep the top-K neighbors per user and predict baseline + weighted neighbor residuals
"""
