import os
from local_changes import LocalChangesTracker

def run_example():
    db_path = "example_basic.db"
    if os.path.exists(db_path):
        os.remove(db_path)
    
    print("--- Local Changes: Basic Example ---")
    
    with LocalChangesTracker(db_path) as tracker:
        conn = tracker.connection
        
        # 1. Create a mirrored table
        conn.execute("""
            CREATE TABLE contacts (
                id TEXT,
                uid TEXT,
                name TEXT,
                email TEXT,
                lastActivityTime TEXT
            )
        """)
        
        # 2. Install change tracking
        tracker.install_tracking("contacts")
        print("Tracking installed on 'contacts' table.")
        
        # 3. The sync process pulls a row from the remote system
        with tracker.sync_applied():
            conn.execute(
                "INSERT INTO contacts (id, name, lastActivityTime) "
                "VALUES ('R-100', 'Ada', '2024-01-01 10:00:00')"
            )
        
        # 4. The user works locally
        print("Inserting and editing contacts...")
        conn.execute("INSERT INTO contacts (name) VALUES ('Grace')")
        conn.execute("UPDATE contacts SET email = 'ada@example.com' WHERE id = 'R-100'")
        
        # 5. Check what the sync process has to push
        log = tracker.change_log
        for entry in log.get_inserts("contacts"):
            print(f"  Insert: uid={entry.uid}")
        for entry in log.get_updates("contacts"):
            print(f"  Update: uid={entry.uid}, field={entry.field_name}")
        
        conn.execute("DELETE FROM contacts WHERE id = 'R-100'")
        for entry in log.get_deletes("contacts"):
            print(f"  Delete: uid={entry.uid}, remote id={entry.id}")
            
    print("\nExample finished. Database saved to", db_path)

if __name__ == "__main__":
    run_example()
