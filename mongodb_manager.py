import time
from typing import Optional, Dict, Any, List

from bson import ObjectId
from pymongo import MongoClient, ASCENDING
from pymongo.errors import DuplicateKeyError
from pymongo.results import InsertOneResult, UpdateResult, DeleteResult

# Statuses a teacher application or a class request can be in
REQUEST_STATUSES = ["Pending", "Rejected", "Accepted"]


class MongoDBManager:
    """Manages MongoDB database operations for EduElevate"""

    def __init__(self, mongo_uri: Optional[str] = None, db_name: str = "eduElevateDB",
                 client: Optional[MongoClient] = None):
        """
        Initialize MongoDB connection

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Name of the database to use
            client: Already constructed client (takes precedence over mongo_uri)
        """
        try:
            self.client = client if client is not None else MongoClient(mongo_uri)
            self.db = self.client[db_name]

            # Collections
            self.users = self.db['users']
            self.classes = self.db['classes']
            self.enrollments = self.db['enrollments']

            self._create_indexes()

            print("✅ MongoDB connection established successfully")
        except Exception as e:
            print(f"❌ Failed to connect to MongoDB: {e}")
            raise

    def close(self):
        """Release the client's connection pool"""
        self.client.close()
        print("✅ MongoDB connection closed")

    def _create_indexes(self):
        """Create database indexes for efficient queries"""
        def _ensure_index(collection, keys, *, unique: bool = False):
            """Create an index if missing; a conflicting existing index is left alone."""
            desired_key = list(keys)
            for info in collection.index_information().values():
                if info.get("key") == desired_key:
                    return

            try:
                collection.create_index(keys, unique=unique)
            except Exception as create_err:
                # Uniqueness fails when duplicates already exist; don't crash the app.
                print(f"⚠️ Warning: Could not create index {desired_key} (unique={unique}): {create_err}")

        _ensure_index(self.users, [("email", ASCENDING)], unique=True)
        _ensure_index(self.users, [("status", ASCENDING)])

        _ensure_index(self.classes, [("email", ASCENDING)])
        _ensure_index(self.classes, [("status", ASCENDING)])

        _ensure_index(self.enrollments, [("email", ASCENDING)])

    # ==================== HELPERS ====================

    @staticmethod
    def _object_id(doc_id: str) -> ObjectId:
        """Parse a path id; raises bson.errors.InvalidId when malformed"""
        return ObjectId(doc_id)

    @staticmethod
    def _serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Render the store-assigned _id as a string so the document is JSON-safe"""
        if doc is None:
            return None
        if isinstance(doc.get("_id"), ObjectId):
            doc["_id"] = str(doc["_id"])
        return doc

    def _serialize_many(self, cursor) -> List[Dict[str, Any]]:
        return [self._serialize(doc) for doc in cursor]

    @staticmethod
    def _insert_result(result: InsertOneResult) -> Dict[str, Any]:
        return {
            "acknowledged": result.acknowledged,
            "insertedId": str(result.inserted_id),
        }

    @staticmethod
    def _update_result(result: UpdateResult) -> Dict[str, Any]:
        upserted_id = result.upserted_id
        return {
            "acknowledged": result.acknowledged,
            "matchedCount": result.matched_count,
            "modifiedCount": result.modified_count,
            "upsertedCount": 0 if upserted_id is None else 1,
            "upsertedId": None if upserted_id is None else str(upserted_id),
        }

    @staticmethod
    def _delete_result(result: DeleteResult) -> Dict[str, Any]:
        return {
            "acknowledged": result.acknowledged,
            "deletedCount": result.deleted_count,
        }

    # ==================== USER OPERATIONS ====================

    def get_all_users(self) -> List[Dict[str, Any]]:
        """Get every user"""
        return self._serialize_many(self.users.find())

    def get_teacher_requests(self) -> List[Dict[str, Any]]:
        """Get users that have applied to teach, whatever the outcome"""
        return self._serialize_many(self.users.find({"status": {"$in": REQUEST_STATUSES}}))

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Get user by email"""
        return self._serialize(self.users.find_one({"email": email}))

    def upsert_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Save a user on login or on a teacher application.

        - New email: the whole payload is upserted (role defaults to student)
        - Existing user with status Pending in the payload: the application
          (status + teacherReqData) is overwritten
        - Existing user otherwise: nothing is written, the stored user is returned
        """
        email = user_data["email"]
        query = {"email": email}

        existing = self.users.find_one(query)
        if existing:
            if user_data.get("status") == "Pending":
                print(f"[UPSERT_USER] Teacher application from {email}")
                result = self.users.update_one(
                    query,
                    {"$set": {
                        "status": user_data.get("status"),
                        "teacherReqData": user_data.get("teacherReqData"),
                    }}
                )
                return self._update_result(result)
            return self._serialize(existing)

        new_user = {k: v for k, v in user_data.items() if k != "_id"}
        new_user["role"] = new_user.get("role") or "student"
        new_user["timestamp"] = int(time.time() * 1000)

        try:
            result = self.users.update_one(query, {"$set": new_user}, upsert=True)
        except DuplicateKeyError:
            # A concurrent first login inserted this email after our lookup
            print(f"[UPSERT_USER] {email} was created concurrently, returning stored user")
            return self._serialize(self.users.find_one(query))
        print(f"[UPSERT_USER] Created user {email}")
        return self._update_result(result)

    def approve_teacher(self, user_id: str) -> Dict[str, Any]:
        """Accept a teacher application"""
        result = self.users.update_one(
            {"_id": self._object_id(user_id)},
            {"$set": {"role": "teacher", "status": "Accepted"}}
        )
        return self._update_result(result)

    def reject_teacher(self, user_id: str) -> Dict[str, Any]:
        """Reject a teacher application"""
        result = self.users.update_one(
            {"_id": self._object_id(user_id)},
            {"$set": {"status": "Rejected"}}
        )
        return self._update_result(result)

    def make_admin(self, user_id: str) -> Dict[str, Any]:
        """Grant the admin role"""
        result = self.users.update_one(
            {"_id": self._object_id(user_id)},
            {"$set": {"role": "admin"}}
        )
        return self._update_result(result)

    # ==================== CLASS OPERATIONS ====================

    def get_accepted_classes(self) -> List[Dict[str, Any]]:
        """Classes visible in the public listing"""
        return self._serialize_many(self.classes.find({"status": "Accepted"}))

    def get_all_classes(self) -> List[Dict[str, Any]]:
        return self._serialize_many(self.classes.find())

    def get_class_requests(self) -> List[Dict[str, Any]]:
        return self._serialize_many(self.classes.find({"status": {"$in": REQUEST_STATUSES}}))

    def get_teacher_classes(self, email: str) -> List[Dict[str, Any]]:
        """Get all classes owned by a teacher"""
        return self._serialize_many(self.classes.find({"email": email}))

    def get_class_by_id(self, class_id: str) -> Optional[Dict[str, Any]]:
        return self._serialize(self.classes.find_one({"_id": self._object_id(class_id)}))

    def create_class(self, class_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new class awaiting admin review"""
        full_class_data = {k: v for k, v in class_data.items() if k != "_id"}
        full_class_data.setdefault("status", "Pending")
        assignments = full_class_data.setdefault("assignments", [])
        full_class_data.setdefault("assignmentCount", len(assignments))
        # Secondary id that existing clients read alongside _id
        full_class_data["classId"] = str(ObjectId())

        result = self.classes.insert_one(full_class_data)
        print(f"[CREATE_CLASS] Class {result.inserted_id} created by {full_class_data.get('email')}")
        return self._insert_result(result)

    def update_class(self, class_id: str, class_data: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite every field the client sent"""
        updates = {k: v for k, v in class_data.items() if k != "_id"}
        updates["updatedAt"] = int(time.time() * 1000)

        result = self.classes.update_one({"_id": self._object_id(class_id)}, {"$set": updates})
        return self._update_result(result)

    def set_class_status(self, class_id: str, status: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Approve or reject a class, storing any extra fields (e.g. admin feedback)"""
        updates = {k: v for k, v in (extra or {}).items() if k != "_id"}
        updates["status"] = status
        updates["updatedAt"] = int(time.time() * 1000)

        result = self.classes.update_one({"_id": self._object_id(class_id)}, {"$set": updates})
        print(f"[CLASS_STATUS] Class {class_id} -> {status} (matched={result.matched_count})")
        return self._update_result(result)

    def delete_class(self, class_id: str) -> Dict[str, Any]:
        result = self.classes.delete_one({"_id": self._object_id(class_id)})
        return self._delete_result(result)

    def add_assignment(self, class_id: str, assignment_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append an assignment to a class.

        The push and the counter increment go in the same update so
        assignmentCount always matches the length of assignments.
        """
        assignment = {**assignment_data, "assignmentId": str(ObjectId())}
        result = self.classes.update_one(
            {"_id": self._object_id(class_id)},
            {
                "$push": {"assignments": assignment},
                "$inc": {"assignmentCount": 1},
            }
        )
        return self._update_result(result)

    # ==================== ENROLLMENT OPERATIONS ====================

    def create_enrollment(self, enrollment_data: Dict[str, Any]) -> Dict[str, Any]:
        """Record a paid enrollment"""
        enrollment = {k: v for k, v in enrollment_data.items() if k != "_id"}
        result = self.enrollments.insert_one(enrollment)
        print(f"[ENROLL] {enrollment.get('email')} enrolled ({result.inserted_id})")
        return self._insert_result(result)

    def get_enrollments_by_email(self, email: str) -> List[Dict[str, Any]]:
        return self._serialize_many(self.enrollments.find({"email": email}))

    # ==================== DATABASE STATS ====================

    def get_database_stats(self) -> Dict[str, Any]:
        """Get database statistics"""
        return {
            "database": "mongodb",
            "users": self.users.count_documents({}),
            "classes": self.classes.count_documents({}),
            "enrollments": self.enrollments.count_documents({}),
        }
