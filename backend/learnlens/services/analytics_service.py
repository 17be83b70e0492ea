# This module computes the analytics summary shown on the dashboard.
# It derives skill correlations, learning personas (KMeans clusters), feature
# importance and model performance from the active student dataset.

import logging
import math

import numpy as np
from sklearn.cluster import KMeans
from sklearn.ensemble import RandomForestRegressor
from sklearn.metrics import r2_score
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import StandardScaler

from learnlens.schema import SKILL_COLUMNS

logger = logging.getLogger(__name__)

TARGET_COLUMN = "assessment_score"

# Personas in descending order of average assessment score
PERSONA_NAMES = ["High Achievers", "Steady Learners", "Needs Support"]

MIN_RECORDS_FOR_CLUSTERS = 2
MIN_RECORDS_FOR_MODEL = 5
MIN_RECORDS_FOR_HOLDOUT = 10

# A prediction within this many points of the real score counts as accurate
ACCURACY_TOLERANCE = 10.0


def _finite(value):
    """Return value as float, or None when it is NaN/inf."""
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def compute_correlations(df):
    """Pearson correlation of each skill with the assessment score."""
    if len(df) < 2:
        return {}
    correlations = {}
    for skill in SKILL_COLUMNS:
        coefficient = _finite(df[skill].corr(df[TARGET_COLUMN]))
        if coefficient is not None:
            correlations[skill] = round(coefficient, 4)
    return correlations


def assign_clusters(df, max_clusters=3, random_state=42):
    """
    Group students into learning personas with KMeans.

    Labels are renumbered so that cluster 0 has the highest average
    assessment score, cluster 1 the next, and so on.

    Returns:
        list[int] | None: One label per row, or None when the dataset is too small
    """
    if len(df) < MIN_RECORDS_FOR_CLUSTERS:
        return None

    features = df[SKILL_COLUMNS].astype(float).to_numpy()
    n_distinct = len(np.unique(features, axis=0))
    k = min(max_clusters, len(df), n_distinct)
    if k < 2:
        return [0] * len(df)

    scaled = StandardScaler().fit_transform(features)
    raw_labels = KMeans(n_clusters=k, n_init=10, random_state=random_state).fit_predict(scaled)

    scores = df[TARGET_COLUMN].astype(float).to_numpy()
    means = {label: scores[raw_labels == label].mean() for label in np.unique(raw_labels)}
    ranking = sorted(means, key=lambda label: means[label], reverse=True)
    remap = {old: new for new, old in enumerate(ranking)}
    return [remap[label] for label in raw_labels]


def persona_name(cluster_id):
    if cluster_id < len(PERSONA_NAMES):
        return PERSONA_NAMES[cluster_id]
    return f"Cluster {cluster_id + 1}"


def summarize_clusters(df):
    """Per-cluster count, average score and mean skill profile."""
    if "cluster" not in df.columns or df["cluster"].isna().all():
        return {}

    clusters = {}
    for cluster_id, group in df.dropna(subset=["cluster"]).groupby("cluster"):
        cluster_id = int(cluster_id)
        clusters[str(cluster_id)] = {
            "name": persona_name(cluster_id),
            "count": int(len(group)),
            "averageScore": round(float(group[TARGET_COLUMN].mean()), 2),
            "characteristics": {
                skill: round(float(group[skill].mean()), 2) for skill in SKILL_COLUMNS
            },
        }
    return clusters


def train_score_model(df, random_state=42):
    """
    Fit a random forest predicting assessment_score from the skills.

    Returns:
        tuple: (feature_importance list, model_performance dict), or ([], None)
        when there are too few records to fit a model
    """
    if len(df) < MIN_RECORDS_FOR_MODEL:
        return [], None

    X = df[SKILL_COLUMNS].astype(float)
    y = df[TARGET_COLUMN].astype(float)

    if len(df) >= MIN_RECORDS_FOR_HOLDOUT:
        X_train, X_test, y_train, y_test = train_test_split(
            X, y, test_size=0.25, random_state=random_state
        )
    else:
        # Too small to hold anything out; report the training fit
        X_train, X_test, y_train, y_test = X, X, y, y

    model = RandomForestRegressor(n_estimators=100, random_state=random_state)
    model.fit(X_train, y_train)
    predictions = model.predict(X_test)

    importance = sorted(
        (
            {"feature": feature, "importance": round(float(weight), 4)}
            for feature, weight in zip(SKILL_COLUMNS, model.feature_importances_)
        ),
        key=lambda item: item["importance"],
        reverse=True,
    )

    performance = {
        "accuracy": _finite(np.mean(np.abs(predictions - y_test.to_numpy()) <= ACCURACY_TOLERANCE)),
        "r2Score": _finite(r2_score(y_test, predictions)) if len(y_test) >= 2 else None,
    }
    return importance, performance


def key_findings(correlations, clusters, feature_importance):
    """Turn the computed numbers into short readable sentences."""
    findings = []
    if correlations:
        skill, coefficient = max(correlations.items(), key=lambda item: abs(item[1]))
        direction = "positively" if coefficient >= 0 else "negatively"
        findings.append(
            f"{skill.replace('_', ' ').capitalize()} is the skill most {direction} "
            f"correlated with assessment score (r = {coefficient:.2f})."
        )
    if feature_importance:
        top = feature_importance[0]
        findings.append(
            f"{top['feature'].replace('_', ' ').capitalize()} is the strongest predictor "
            f"of assessment score ({top['importance'] * 100:.1f}% importance)."
        )
    if clusters:
        largest = max(clusters.values(), key=lambda c: c["count"])
        findings.append(
            f"The largest learning persona is '{largest['name']}' with "
            f"{largest['count']} students averaging {largest['averageScore']:.1f}."
        )
    return findings


def build_analytics_summary(df, random_state=42):
    """
    Compute the full analytics payload for the active dataset.

    Args:
        df (pd.DataFrame): Active students, including the stored cluster column

    Returns:
        dict: correlations, clusters, keyFindings, featureImportance and,
        when a model could be fitted, modelPerformance
    """
    if df.empty:
        return {"correlations": {}, "clusters": {}, "keyFindings": [], "featureImportance": []}

    correlations = compute_correlations(df)
    clusters = summarize_clusters(df)
    feature_importance, performance = train_score_model(df, random_state=random_state)

    summary = {
        "correlations": correlations,
        "clusters": clusters,
        "keyFindings": key_findings(correlations, clusters, feature_importance),
        "featureImportance": feature_importance,
    }
    if performance is not None:
        summary["modelPerformance"] = performance

    logger.info(
        "Analytics computed for %d students: %d correlations, %d clusters",
        len(df), len(correlations), len(clusters),
    )
    return summary
