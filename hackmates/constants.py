COLLEGES = [
    "IIT Bombay", "IIT Delhi", "IIT Madras", "IIT Kanpur", "IIT Kharagpur",
    "NIT Trichy", "NIT Warangal", "BITS Pilani", "VIT Vellore", "Other",
]

COURSES = ["B.Tech", "B.E.", "M.Tech", "MCA", "BCA"]

BRANCHES = [
    "Computer Science", "Information Technology", "Electronics",
    "Electrical", "Mechanical", "Civil", "Other",
]

SEMESTERS = ["1st", "2nd", "3rd", "4th", "5th", "6th", "7th", "8th"]

SKILLS = [
    "JavaScript", "TypeScript", "React", "Next.js", "Node.js",
    "Python", "Java", "C++", "Go", "Rust",
    "AWS", "Docker", "Kubernetes", "MongoDB", "PostgreSQL",
    "Machine Learning", "DevOps", "Cloud Computing", "Blockchain",
    "UI/UX Design", "Mobile Development", "Data Science",
]

MIN_NAME_LENGTH = 2
MAX_BIO_LENGTH = 500
MAX_PROJECT_DESCRIPTION_LENGTH = 300
MAX_PHOTO_SIZE = 5 * 1024 * 1024
ALLOWED_PHOTO_TYPES = ("image/jpeg", "image/png", "image/jpg")

ANONYMOUS_NAME = "Anonymous"
ONLINE_STATUS = "Online"

MESSAGES_COLLECTION = "messages"
USERS_COLLECTION = "users"
REVOKED_TOKENS_COLLECTION = "revoked_tokens"
