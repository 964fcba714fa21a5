"""Configuration centralisée Celery pour les tâches asynchrones.

Ce module définit la configuration globale de Celery: acquittement tardif, limites de temps et
de connexion au broker. Aucune relance automatique: une régénération ratée est journalisée
et la politique de relance appartient à un ordonnanceur externe.
"""

# ============================================================
# Module : backend/app/celeryconfig.py
# Objet  : Configuration centralisée Celery (acks, timeouts).
# ============================================================

from __future__ import annotations

task_acks_late = True
task_reject_on_worker_lost = True
worker_prefetch_multiplier = 1
task_time_limit = 300  # secondes
task_soft_time_limit = 240  # secondes
broker_pool_limit = 10
task_serializer = "json"
accept_content = ["json"]
