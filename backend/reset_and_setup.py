from pathlib import Path

from learnlens import create_app
from learnlens.utils.csv_handler import clear_dataset, read_student_csv, replace_dataset

SAMPLE_CSV = Path(__file__).resolve().parent / "learnlens" / "static" / "sample-student-data.csv"


def reset_and_setup(csv_path=SAMPLE_CSV):
    print("🔄 Resetting and loading the sample dataset...")
    app = create_app()

    with app.app_context():
        # Clear all data
        print("\n🧹 Clearing existing data...")
        removed = clear_dataset()
        print(f"✅ Removed {removed} student records")

        print(f"\n👥 Loading students from {csv_path}...")
        df = read_student_csv(Path(csv_path).read_bytes())
        dataset = replace_dataset(
            df,
            Path(csv_path).name,
            max_clusters=app.config["ANALYTICS_MAX_CLUSTERS"],
            random_state=app.config["ANALYTICS_RANDOM_STATE"],
        )
        print(f"✅ Loaded {dataset.record_count} students")

    print("\n✅ Sample data setup complete!")


if __name__ == "__main__":
    reset_and_setup()
